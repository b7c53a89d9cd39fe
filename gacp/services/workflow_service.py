from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from gacp.crud.application import audit_entry, get_application, write_workflow_state
from gacp.crud.assessment import has_passed_assessment
from gacp.crud.notification import create_notification
from gacp.crud.payment import completed_milestones
from gacp.models.application import Application
from gacp.models.notification import Notification
from gacp.models.user import User
from gacp.services.errors import NotFoundError
from gacp.worker.dispatch import emit_deliver_notification
from gacp.workflow.errors import ErrorKind, WorkflowError
from gacp.workflow.notifications import DEFAULT_LOCALE, normalize_locale, notification_for
from gacp.workflow.status import Role
from gacp.workflow.transitions import EventType, TransitionContext, TransitionResult, WorkflowEvent, transition

logger = logging.getLogger("gacp.workflow")


@dataclass(frozen=True)
class Actor:
    """Who is asking. ``role=None`` is an internal caller (webhook, worker)."""

    id: UUID | None = None
    role: Role | None = None
    locale: str = DEFAULT_LOCALE
    request_id: str | None = None


SYSTEM_ACTOR = Actor()


@dataclass
class WorkflowOutcome:
    result: TransitionResult
    application: Application
    notification: Notification | None = None

    @property
    def ok(self) -> bool:
        return self.result.ok

    @property
    def error(self) -> WorkflowError | None:
        return self.result.error


class WorkflowService:
    """Applies workflow events to persisted applications.

    The transition itself is pure; this class owns the read / decide / write
    cycle around it. Writes are guarded by ``applications.version``: a stale
    write is re-read and retried once, then reported as a conflict.
    """

    max_attempts = 2

    async def apply_event(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        event: WorkflowEvent,
        actor: Actor = SYSTEM_ACTOR,
        expected_version: int | None = None,
        reviewer_comments: str | None = None,
        commit: bool = True,
    ) -> WorkflowOutcome:
        """Apply ``event`` and persist the result.

        With ``commit=False`` the caller owns the transaction and must call
        ``dispatch`` after committing.
        """

        app = await self._load(session, application_id)

        if expected_version is not None and app.version != expected_version:
            logger.warning(
                "version_mismatch application_id=%s expected=%s actual=%s",
                application_id,
                expected_version,
                app.version,
            )
            return self._rejected(app, event, WorkflowError.conflict())

        for attempt in range(1, self.max_attempts + 1):
            ctx = await self._context(session, app, actor, event)
            result = transition(app.workflow_status, event, ctx)
            if not result.ok:
                self._log_rejection(app, result, actor)
                return WorkflowOutcome(result=result, application=app)

            written = await write_workflow_state(
                session,
                application_id=app.id,
                expected_version=app.version,
                workflow_status=result.status,
                revision_count=result.revision_count,
                reviewer_comments=reviewer_comments,
            )
            if written:
                break

            logger.warning(
                "stale_write application_id=%s event=%s version=%s attempt=%s",
                app.id,
                event.type.value,
                app.version,
                attempt,
            )
            # A caller that pinned a version asked for exactly that state.
            if expected_version is not None or attempt == self.max_attempts:
                return self._rejected(app, event, WorkflowError.conflict())
            app = await self._load(session, application_id)

        previous_version = app.version
        app = await self._load(session, application_id)

        session.add(
            audit_entry(
                entity_type="application",
                entity_id=app.id,
                action="workflow_transition",
                old_value={
                    "workflow_status": result.previous_status.value,
                    "revision_count": ctx.revision_count,
                    "version": previous_version,
                },
                new_value={
                    "workflow_status": result.status.value,
                    "revision_count": result.revision_count,
                    "version": app.version,
                },
                summary=f"{event.type.value}: {result.previous_status.value} -> {result.status.value}",
                user_id=actor.id,
                request_id=actor.request_id,
            )
        )

        notification = None
        intent = notification_for(
            result,
            application_id=app.id,
            applicant_id=app.applicant_id,
            application_number=app.application_number,
            locale=await self._recipient_locale(session, app, actor),
        )
        if intent is not None:
            notification = await create_notification(session, intent=intent)

        logger.info(
            "transition application_id=%s event=%s from=%s to=%s revision_count=%s version=%s",
            app.id,
            event.type.value,
            result.previous_status.value,
            result.status.value,
            result.revision_count,
            app.version,
        )

        outcome = WorkflowOutcome(result=result, application=app, notification=notification)
        if commit:
            await session.commit()
            self.dispatch(outcome)
        else:
            await session.flush()
        return outcome

    def dispatch(self, outcome: WorkflowOutcome) -> None:
        if outcome.notification is not None:
            emit_deliver_notification(notification_id=outcome.notification.id)

    async def _load(self, session: AsyncSession, application_id: UUID) -> Application:
        app = await get_application(session, application_id=application_id, fresh=True)
        if app is None:
            raise NotFoundError("Application")
        return app

    async def _context(
        self, session: AsyncSession, app: Application, actor: Actor, event: WorkflowEvent
    ) -> TransitionContext:
        # Only payments raised in the current revision cycle open the gate.
        done = await completed_milestones(session, application_id=app.id, revision_cycle=app.revision_count)
        # Certification must be backed by a recorded pass, whoever sends the event.
        passed = None
        if event.type == EventType.ASSESSMENT_COMPLETE:
            passed = await has_passed_assessment(session, application_id=app.id)
        return TransitionContext(
            revision_count=app.revision_count,
            max_free_revisions=app.max_free_revisions,
            completed_milestones=done,
            actor_role=actor.role,
            locale=normalize_locale(actor.locale),
            assessment_passed=passed,
        )

    async def _recipient_locale(self, session: AsyncSession, app: Application, actor: Actor) -> str:
        applicant = await session.get(User, app.applicant_id)
        if applicant is not None and applicant.preferred_language:
            return normalize_locale(applicant.preferred_language)
        return normalize_locale(actor.locale)

    def _rejected(self, app: Application, event: WorkflowEvent, error: WorkflowError) -> WorkflowOutcome:
        result = TransitionResult(
            previous_status=None,
            status=None,
            revision_count=app.revision_count,
            event=event,
            error=error,
        )
        return WorkflowOutcome(result=result, application=app)

    def _log_rejection(self, app: Application, result: TransitionResult, actor: Actor) -> None:
        error = result.error
        if error.kind == ErrorKind.CORRUPT_STATE:
            logger.critical(
                "corrupt_state application_id=%s workflow_status=%r revision_count=%s detail=%s",
                app.id,
                app.workflow_status,
                app.revision_count,
                error.message,
            )
            return

        logger.info(
            "transition_rejected application_id=%s event=%s status=%s kind=%s role=%s detail=%s",
            app.id,
            result.event.type.value,
            app.workflow_status,
            error.kind.value,
            actor.role.value if actor.role else "system",
            error.message,
        )


workflow_service = WorkflowService()
