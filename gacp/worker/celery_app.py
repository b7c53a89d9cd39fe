from __future__ import annotations

from celery import Celery

from gacp.config import settings

EXPIRE_OVERDUE_PAYMENTS_TASK = "gacp.expire_overdue_payments"


def make_celery() -> Celery:
    """Create the Celery app.

    Kept in a function so the API can import it for task emission without
    touching the broker.
    """

    celery = Celery(
        "gacp",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["gacp.worker.tasks"],
    )

    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        beat_schedule={
            "expire-overdue-payments": {
                "task": EXPIRE_OVERDUE_PAYMENTS_TASK,
                "schedule": float(settings.payment_sweep_interval_seconds),
            },
        },
    )

    return celery


celery_app = make_celery()
