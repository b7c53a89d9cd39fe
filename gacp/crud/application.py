from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.config import settings
from gacp.models.application import Application
from gacp.models.audit_log import AuditLog
from gacp.schemas.application import ApplicationCreate, ApplicationUpdate
from gacp.workflow.status import WorkflowStatus, application_status_for

BUDDHIST_ERA_OFFSET = 543

# Farm metadata may only change while the applicant owns the next step.
EDITABLE_STATUSES = frozenset({WorkflowStatus.DRAFT.value, WorkflowStatus.REVISION_REQUESTED.value})


def format_application_number(sequence: int, year: int) -> str:
    """GACP-<sequence>-<Buddhist era year>, e.g. GACP-0001-2568."""

    return f"GACP-{sequence % 10_000:04d}-{year + BUDDHIST_ERA_OFFSET}"


async def next_application_number(session: AsyncSession, *, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    seq = int((await session.execute(text("SELECT nextval('application_number_seq')"))).scalar_one())
    return format_application_number(seq, now.year)


def audit_entry(
    *,
    entity_type: str,
    entity_id: UUID,
    action: str,
    old_value: dict | None,
    new_value: dict | None,
    summary: str,
    user_id: UUID | None = None,
    request_id: str | None = None,
) -> AuditLog:
    return AuditLog(
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        change_summary=summary,
        request_id=request_id,
    )


async def get_application(
    session: AsyncSession,
    *,
    application_id,
    applicant_id=None,
    fresh: bool = False,
) -> Application | None:
    stmt = select(Application).where(Application.id == application_id)
    if applicant_id is not None:
        stmt = stmt.where(Application.applicant_id == applicant_id)
    if fresh:
        # Bypass the identity map so a re-read after a stale write sees the row.
        stmt = stmt.execution_options(populate_existing=True)

    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def create_application(session: AsyncSession, obj_in: ApplicationCreate) -> Application:
    application_number = await next_application_number(session)

    app = Application(
        application_number=application_number,
        applicant_id=obj_in.applicant_id,
        product_id=obj_in.product_id,
        status=application_status_for(WorkflowStatus.DRAFT).value,
        workflow_status=WorkflowStatus.DRAFT.value,
        revision_count=0,
        max_free_revisions=settings.max_free_revisions,
        version=1,
        farm_name=obj_in.farm_name,
        farm_address=obj_in.farm_address,
        farm_area_rai=obj_in.farm_area_rai,
        crop_types=obj_in.crop_types,
        cultivation_methods=obj_in.cultivation_methods,
        farm_details=obj_in.farm_details,
    )

    session.add(app)
    await session.flush()  # ensure app.id is available

    session.add(
        audit_entry(
            entity_type="application",
            entity_id=app.id,
            action="create",
            old_value=None,
            new_value={
                "application_number": application_number,
                "workflow_status": WorkflowStatus.DRAFT.value,
                "revision_count": 0,
            },
            summary="application created",
            user_id=obj_in.applicant_id,
        )
    )

    await session.commit()
    await session.refresh(app)
    return app


async def list_applications(
    session: AsyncSession,
    *,
    applicant_id=None,
    workflow_status: str | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Application], int]:
    """Return (items, total), newest first."""

    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1 or page_size > 100:
        raise ValueError("page_size must be between 1 and 100")

    stmt = select(Application)

    if applicant_id is not None:
        stmt = stmt.where(Application.applicant_id == applicant_id)
    if workflow_status is not None:
        stmt = stmt.where(Application.workflow_status == workflow_status)
    if status is not None:
        stmt = stmt.where(Application.status == status)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = int((await session.execute(count_stmt)).scalar_one())

    stmt = stmt.order_by(Application.created_at.desc(), Application.id.desc())
    stmt = stmt.offset((page - 1) * page_size).limit(page_size)

    res = await session.execute(stmt)
    return list(res.scalars().all()), total


async def update_application_fields(
    session: AsyncSession,
    *,
    db_obj: Application,
    obj_in: ApplicationUpdate,
) -> Application:
    data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
    old = {k: _jsonable(getattr(db_obj, k)) for k in data}

    for field, value in data.items():
        setattr(db_obj, field, value)
    db_obj.updated_at = func.now()

    session.add(
        audit_entry(
            entity_type="application",
            entity_id=db_obj.id,
            action="update",
            old_value=old,
            new_value={k: _jsonable(v) for k, v in data.items()},
            summary="farm details updated",
            user_id=db_obj.applicant_id,
        )
    )

    await session.commit()
    await session.refresh(db_obj)
    return db_obj


async def write_workflow_state(
    session: AsyncSession,
    *,
    application_id: UUID,
    expected_version: int,
    workflow_status: WorkflowStatus,
    revision_count: int,
    reviewer_comments: str | None = None,
) -> bool:
    """Persist a transition result unless the row moved past ``expected_version``.

    Returns False on a stale write; nothing is changed in that case.
    """

    values: dict[str, Any] = {
        "workflow_status": workflow_status.value,
        "status": application_status_for(workflow_status).value,
        "revision_count": revision_count,
        "version": expected_version + 1,
        "updated_at": func.now(),
    }
    if workflow_status == WorkflowStatus.SUBMITTED:
        values["submitted_at"] = func.coalesce(Application.submitted_at, func.now())
    elif workflow_status == WorkflowStatus.REVIEW_APPROVED:
        values["approved_at"] = func.now()
    elif workflow_status == WorkflowStatus.CERTIFIED:
        values["certified_at"] = func.now()
    if reviewer_comments is not None:
        values["reviewer_comments"] = reviewer_comments

    stmt = (
        update(Application)
        .where(Application.id == application_id, Application.version == expected_version)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return str(value)
