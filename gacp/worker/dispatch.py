from __future__ import annotations

import logging
from uuid import UUID

from gacp.config import settings
from gacp.worker.celery_app import celery_app

logger = logging.getLogger("gacp.worker")

DELIVER_NOTIFICATION_TASK = "gacp.deliver_notification"
ISSUE_CERTIFICATE_TASK = "gacp.issue_certificate"


def _emit(task_name: str, entity_id: UUID) -> bool:
    """Fire-and-forget a task. Never raises: the caller's write already committed.

    A no-op unless ``settings.celery_enabled``.
    """

    if not settings.celery_enabled:
        return False

    try:
        celery_app.send_task(task_name, args=[str(entity_id)])
    except Exception:
        logger.exception("emit_failed task=%s id=%s", task_name, entity_id)
        return False
    return True


def emit_deliver_notification(*, notification_id: UUID) -> bool:
    return _emit(DELIVER_NOTIFICATION_TASK, notification_id)


def emit_issue_certificate(*, application_id: UUID) -> bool:
    return _emit(ISSUE_CERTIFICATE_TASK, application_id)
