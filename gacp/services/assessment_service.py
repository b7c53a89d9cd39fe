from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from gacp.config import settings
from gacp.crud.application import audit_entry, get_application
from gacp.crud.assessment import (
    assessments,
    cancel_open_assessments,
    create_assessment,
    get_assessment,
    latest_assessment,
)
from gacp.crud.certificate import create_certificate
from gacp.models.assessment import Assessment
from gacp.models.certificate import Certificate
from gacp.schemas.assessment import AssessmentComplete, AssessmentCreate
from gacp.services.errors import NotFoundError, WorkflowRejected
from gacp.services.workflow_service import SYSTEM_ACTOR, Actor, WorkflowOutcome, WorkflowService
from gacp.worker.dispatch import emit_issue_certificate
from gacp.workflow.status import (
    AssessmentStatus,
    AssessmentType,
    CorruptStateError,
    assessment_type_of,
    parse_workflow_status,
)
from gacp.workflow.transitions import EventType, WorkflowEvent

logger = logging.getLogger("gacp.workflow")


def meeting_link(assessment_id: UUID) -> str:
    return f"{settings.meeting_base_url}?token={uuid4().hex}&assessment={assessment_id}"


class AssessmentService:
    """Online and onsite assessments and the certificate step after a pass."""

    def __init__(self, *, workflow: WorkflowService | None = None) -> None:
        self._workflow = workflow or WorkflowService()

    async def schedule(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        payload: AssessmentCreate,
        actor: Actor = SYSTEM_ACTOR,
    ) -> tuple[Assessment, WorkflowOutcome]:
        """Schedule (or reschedule) an assessment; escalation to ONSITE included."""

        outcome = await self._workflow.apply_event(
            session,
            application_id=application_id,
            event=WorkflowEvent(type=EventType.ASSESSMENT_SCHEDULE, assessment_type=payload.type),
            actor=actor,
            commit=False,
        )
        if not outcome.ok:
            await session.rollback()
            raise WorkflowRejected(outcome.error)

        cancelled = await cancel_open_assessments(session, application_id=application_id)

        assessment = await create_assessment(
            session,
            application_id=application_id,
            auditor_id=payload.auditor_id,
            type=payload.type.value,
            scheduled_at=payload.scheduled_at,
            meeting_url=payload.meeting_url,
            onsite_address=payload.onsite_address,
        )
        if payload.type == AssessmentType.ONLINE and not assessment.meeting_url:
            assessment.meeting_url = meeting_link(assessment.id)

        session.add(
            audit_entry(
                entity_type="assessment",
                entity_id=assessment.id,
                action="schedule",
                old_value=None,
                new_value={"type": payload.type.value, "scheduled_at": payload.scheduled_at.isoformat()},
                summary=f"{payload.type.value} assessment scheduled, {cancelled} cancelled",
                user_id=actor.id,
                request_id=actor.request_id,
            )
        )

        await session.commit()
        await session.refresh(assessment)
        self._workflow.dispatch(outcome)

        logger.info(
            "assessment_scheduled application_id=%s assessment_id=%s type=%s rescheduled=%s",
            application_id,
            assessment.id,
            assessment.type,
            cancelled > 0,
        )
        return assessment, outcome

    async def start(
        self,
        session: AsyncSession,
        *,
        assessment_id: UUID,
        actor: Actor = SYSTEM_ACTOR,
    ) -> tuple[Assessment, WorkflowOutcome]:
        assessment = await self._get(session, assessment_id)
        if assessment.status != AssessmentStatus.SCHEDULED.value:
            raise WorkflowRejected.invalid(f"assessment is {assessment.status}")
        await self._check_kind(session, assessment)

        outcome = await self._workflow.apply_event(
            session,
            application_id=assessment.application_id,
            event=WorkflowEvent(type=EventType.ASSESSMENT_START, assessment_type=AssessmentType(assessment.type)),
            actor=actor,
            commit=False,
        )
        if not outcome.ok:
            await session.rollback()
            raise WorkflowRejected(outcome.error)

        await assessments.update(
            session,
            db_obj=assessment,
            obj_in={"status": AssessmentStatus.IN_PROGRESS.value, "started_at": datetime.now(timezone.utc)},
        )
        await session.commit()
        await session.refresh(assessment)
        self._workflow.dispatch(outcome)
        return assessment, outcome

    async def complete(
        self,
        session: AsyncSession,
        *,
        assessment_id: UUID,
        payload: AssessmentComplete,
        actor: Actor = SYSTEM_ACTOR,
    ) -> tuple[Assessment, WorkflowOutcome]:
        """Record the result. A pass queues certificate issuance unless held back."""

        assessment = await self._get(session, assessment_id)
        if assessment.status != AssessmentStatus.IN_PROGRESS.value:
            raise WorkflowRejected.invalid(f"assessment is {assessment.status}")

        outcome = await self._workflow.apply_event(
            session,
            application_id=assessment.application_id,
            event=WorkflowEvent(
                type=EventType.ASSESSMENT_COMPLETE,
                assessment_type=AssessmentType(assessment.type),
                passed=payload.passed,
            ),
            actor=actor,
            commit=False,
        )
        if not outcome.ok:
            await session.rollback()
            raise WorkflowRejected(outcome.error)

        await assessments.update(
            session,
            db_obj=assessment,
            obj_in={
                "status": AssessmentStatus.COMPLETED.value,
                "completed_at": datetime.now(timezone.utc),
                "passed": payload.passed,
                "score": payload.score,
                "result_summary": payload.result_summary,
            },
        )
        session.add(
            audit_entry(
                entity_type="assessment",
                entity_id=assessment.id,
                action="complete",
                old_value={"status": AssessmentStatus.IN_PROGRESS.value},
                new_value={"status": AssessmentStatus.COMPLETED.value, "passed": payload.passed, "score": payload.score},
                summary="passed" if payload.passed else "failed",
                user_id=actor.id,
                request_id=actor.request_id,
            )
        )
        await session.commit()
        await session.refresh(assessment)
        self._workflow.dispatch(outcome)

        if payload.passed and payload.issue_certificate:
            emit_issue_certificate(application_id=assessment.application_id)
        return assessment, outcome

    async def certify(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        actor: Actor = SYSTEM_ACTOR,
    ) -> tuple[WorkflowOutcome, Certificate]:
        """Move a passed *_COMPLETED application to CERTIFIED and issue its certificate."""

        app = await get_application(session, application_id=application_id)
        if app is None:
            raise NotFoundError("Application")

        latest = await latest_assessment(session, application_id=application_id)
        if latest is None or latest.status != AssessmentStatus.COMPLETED.value or not latest.passed:
            raise WorkflowRejected.invalid("no passed assessment to certify")

        outcome = await self._workflow.apply_event(
            session,
            application_id=application_id,
            event=WorkflowEvent(
                type=EventType.ASSESSMENT_COMPLETE,
                assessment_type=AssessmentType(latest.type),
                passed=True,
            ),
            actor=actor,
            commit=False,
        )
        if not outcome.ok:
            await session.rollback()
            raise WorkflowRejected(outcome.error)

        certificate = await create_certificate(session, application_id=application_id)
        session.add(
            audit_entry(
                entity_type="certificate",
                entity_id=certificate.id,
                action="issue",
                old_value=None,
                new_value={
                    "certificate_number": certificate.certificate_number,
                    "expires_at": certificate.expires_at.isoformat(),
                },
                summary=f"certificate for {app.application_number}",
                user_id=actor.id,
                request_id=actor.request_id,
            )
        )
        await session.commit()
        await session.refresh(certificate)
        self._workflow.dispatch(outcome)

        logger.info(
            "certificate_issued application_id=%s certificate_number=%s expires_at=%s",
            application_id,
            certificate.certificate_number,
            certificate.expires_at,
        )
        return outcome, certificate

    async def _get(self, session: AsyncSession, assessment_id: UUID) -> Assessment:
        assessment = await get_assessment(session, assessment_id=assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment")
        return assessment

    async def _check_kind(self, session: AsyncSession, assessment: Assessment) -> None:
        app = await get_application(session, application_id=assessment.application_id, fresh=True)
        if app is None:
            raise NotFoundError("Application")
        try:
            status = parse_workflow_status(app.workflow_status)
        except CorruptStateError:
            # apply_event reports it.
            return
        kind = assessment_type_of(status)
        if kind is not None and kind.value != assessment.type:
            raise WorkflowRejected.invalid(
                f"{assessment.type} assessment does not match {status.value}"
            )
