"""Workflow transition function.

``transition(current_status, event, context)`` maps a persisted status and an
event to the next status. It never raises for inputs in its domain and never
mutates anything: failures come back as a ``TransitionResult`` carrying a
``WorkflowError``, and the caller must not persist those.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from .errors import WorkflowError
from .revision_policy import DEFAULT_MAX_FREE_REVISIONS, RevisionPolicy
from .status import (
    AssessmentStatus,
    AssessmentType,
    CorruptStateError,
    Milestone,
    Role,
    WorkflowStatus,
    assessment_stage_of,
    assessment_status_for,
    assessment_type_of,
    is_payment_gated,
    is_terminal,
    parse_workflow_status,
)


class EventType(str, Enum):
    SUBMIT = "SUBMIT"
    PAYMENT_REQUESTED = "PAYMENT_REQUESTED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    REVIEW_START = "REVIEW_START"
    REVIEW_APPROVE = "REVIEW_APPROVE"
    REVIEW_REJECT = "REVIEW_REJECT"
    ASSESSMENT_SCHEDULE = "ASSESSMENT_SCHEDULE"
    ASSESSMENT_START = "ASSESSMENT_START"
    ASSESSMENT_COMPLETE = "ASSESSMENT_COMPLETE"
    REJECT = "REJECT"
    EXPIRE = "EXPIRE"
    REVOKE = "REVOKE"


@dataclass(frozen=True)
class WorkflowEvent:
    type: EventType
    milestone: Milestone | None = None
    assessment_type: AssessmentType | None = None
    passed: bool | None = None


@dataclass(frozen=True)
class TransitionContext:
    """Everything the transition needs besides the current status.

    ``actor_role=None`` means an internal caller (payment webhook, scheduler)
    and skips the role gate. ``assessment_passed`` is what persistence knows
    about the latest assessment: ``False`` blocks certification, ``None`` means
    the caller did not look and the passed flag on the event is trusted.
    """

    revision_count: int = 0
    max_free_revisions: int = DEFAULT_MAX_FREE_REVISIONS
    completed_milestones: frozenset[Milestone] = frozenset()
    actor_role: Role | None = None
    locale: str = "th"
    assessment_passed: bool | None = None


@dataclass(frozen=True)
class TransitionResult:
    previous_status: WorkflowStatus | None
    status: WorkflowStatus | None
    revision_count: int
    event: WorkflowEvent
    error: WorkflowError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


_STAFF_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})

# Admin roles may trigger any event on top of these.
EVENT_ROLES: dict[EventType, frozenset[Role]] = {
    EventType.SUBMIT: frozenset({Role.FARMER}),
    EventType.PAYMENT_REQUESTED: frozenset({Role.FARMER}),
    EventType.PAYMENT_CONFIRMED: frozenset(),
    EventType.REVIEW_START: frozenset({Role.REVIEWER}),
    EventType.REVIEW_APPROVE: frozenset({Role.REVIEWER}),
    EventType.REVIEW_REJECT: frozenset({Role.REVIEWER}),
    EventType.ASSESSMENT_SCHEDULE: frozenset({Role.AUDITOR}),
    EventType.ASSESSMENT_START: frozenset({Role.AUDITOR}),
    EventType.ASSESSMENT_COMPLETE: frozenset({Role.AUDITOR}),
    EventType.REJECT: frozenset({Role.REVIEWER}),
    EventType.EXPIRE: frozenset(),
    EventType.REVOKE: frozenset(),
}


def role_may_trigger(role: Role, event_type: EventType) -> bool:
    return role in _STAFF_ROLES or role in EVENT_ROLES.get(event_type, frozenset())


_Step = Union[tuple[WorkflowStatus, int], WorkflowError]

_SIMPLE: dict[tuple[EventType, WorkflowStatus], WorkflowStatus] = {
    (EventType.SUBMIT, WorkflowStatus.DRAFT): WorkflowStatus.SUBMITTED,
    # Resubmission after a correction goes straight back to the reviewer.
    (EventType.SUBMIT, WorkflowStatus.REVISION_REQUESTED): WorkflowStatus.UNDER_REVIEW,
    (EventType.REVIEW_START, WorkflowStatus.PAYMENT_CONFIRMED_REVIEW): WorkflowStatus.UNDER_REVIEW,
    (EventType.REVIEW_APPROVE, WorkflowStatus.UNDER_REVIEW): WorkflowStatus.REVIEW_APPROVED,
}

_PAYMENT_PENDING: dict[WorkflowStatus, WorkflowStatus] = {
    WorkflowStatus.SUBMITTED: WorkflowStatus.PAYMENT_PENDING_REVIEW,
    WorkflowStatus.REVIEW_APPROVED: WorkflowStatus.PAYMENT_PENDING_ASSESSMENT,
}

# Keys are exactly the payment-gated statuses.
_PAYMENT_CONFIRMED: dict[WorkflowStatus, WorkflowStatus] = {
    WorkflowStatus.SUBMITTED: WorkflowStatus.PAYMENT_CONFIRMED_REVIEW,
    WorkflowStatus.PAYMENT_PENDING_REVIEW: WorkflowStatus.PAYMENT_CONFIRMED_REVIEW,
    WorkflowStatus.REJECTED_PAYMENT_REQUIRED: WorkflowStatus.REVISION_REQUESTED,
    WorkflowStatus.REVIEW_APPROVED: WorkflowStatus.PAYMENT_CONFIRMED_ASSESSMENT,
    WorkflowStatus.PAYMENT_PENDING_ASSESSMENT: WorkflowStatus.PAYMENT_CONFIRMED_ASSESSMENT,
}


def _not_allowed(status: WorkflowStatus, event: WorkflowEvent) -> WorkflowError:
    return WorkflowError.invalid(f"{event.type.value} is not allowed in {status.value}")


def _simple(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    nxt = _SIMPLE.get((event.type, status))
    if nxt is None:
        return _not_allowed(status, event)
    return nxt, ctx.revision_count


def _payment_requested(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    nxt = _PAYMENT_PENDING.get(status)
    if nxt is None:
        return _not_allowed(status, event)
    if event.milestone is not None and event.milestone != is_payment_gated(status):
        return WorkflowError.invalid(
            f"milestone {int(event.milestone)} is not due in {status.value}"
        )
    return nxt, ctx.revision_count


def _payment_confirmed(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    gate = is_payment_gated(status)
    if gate is None:
        return WorkflowError.invalid(f"no payment is due in {status.value}")
    if event.milestone is None:
        return WorkflowError.invalid("PAYMENT_CONFIRMED requires a milestone")
    if event.milestone != gate:
        return WorkflowError.invalid(
            f"milestone {int(event.milestone)} does not match due milestone {int(gate)}"
        )
    if gate not in ctx.completed_milestones:
        return WorkflowError.invalid(f"milestone {int(gate)} payment is not completed")
    return _PAYMENT_CONFIRMED[status], ctx.revision_count


def _review_reject(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    if status != WorkflowStatus.UNDER_REVIEW:
        return _not_allowed(status, event)
    outcome = RevisionPolicy(ctx.max_free_revisions).on_rejection(ctx.revision_count)
    return outcome.status, outcome.revision_count


def _assessment_schedule(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    if event.assessment_type is None:
        return WorkflowError.invalid("ASSESSMENT_SCHEDULE requires an assessment type")

    allowed = (
        status == WorkflowStatus.PAYMENT_CONFIRMED_ASSESSMENT
        or assessment_stage_of(status) == AssessmentStatus.SCHEDULED
        # A completed online assessment may be escalated to a field audit.
        or (
            status == WorkflowStatus.ONLINE_ASSESSMENT_COMPLETED
            and event.assessment_type == AssessmentType.ONSITE
        )
    )
    if not allowed:
        return _not_allowed(status, event)
    return assessment_status_for(event.assessment_type, AssessmentStatus.SCHEDULED), ctx.revision_count


def _assessment_start(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    if assessment_stage_of(status) != AssessmentStatus.SCHEDULED:
        return _not_allowed(status, event)

    kind = assessment_type_of(status)
    if event.assessment_type is not None and event.assessment_type != kind:
        return WorkflowError.invalid(
            f"{event.assessment_type.value} assessment cannot start {status.value}"
        )
    return assessment_status_for(kind, AssessmentStatus.IN_PROGRESS), ctx.revision_count


def _assessment_complete(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
    stage = assessment_stage_of(status)
    if stage not in (AssessmentStatus.IN_PROGRESS, AssessmentStatus.COMPLETED):
        return _not_allowed(status, event)
    if event.passed is None:
        return WorkflowError.invalid("ASSESSMENT_COMPLETE requires a passed flag")

    kind = assessment_type_of(status)
    if event.assessment_type is not None and event.assessment_type != kind:
        return WorkflowError.invalid(
            f"{event.assessment_type.value} result cannot complete {status.value}"
        )

    if not event.passed:
        # A recorded result is final; only a running assessment can fail.
        if stage != AssessmentStatus.IN_PROGRESS:
            return WorkflowError.invalid(f"{status.value} already holds a passed result")
        outcome = RevisionPolicy(ctx.max_free_revisions).on_rejection(ctx.revision_count)
        return outcome.status, outcome.revision_count

    if stage == AssessmentStatus.IN_PROGRESS:
        return assessment_status_for(kind, AssessmentStatus.COMPLETED), ctx.revision_count
    if ctx.assessment_passed is False:
        return WorkflowError.invalid("no passed assessment is on record")
    return WorkflowStatus.CERTIFIED, ctx.revision_count


def _close(target: WorkflowStatus, *, allow_draft: bool) -> Callable[[WorkflowStatus, WorkflowEvent, TransitionContext], _Step]:
    def handler(status: WorkflowStatus, event: WorkflowEvent, ctx: TransitionContext) -> _Step:
        if status == WorkflowStatus.DRAFT and not allow_draft:
            return _not_allowed(status, event)
        return target, ctx.revision_count

    return handler


_HANDLERS: dict[EventType, Callable[[WorkflowStatus, WorkflowEvent, TransitionContext], _Step]] = {
    EventType.SUBMIT: _simple,
    EventType.PAYMENT_REQUESTED: _payment_requested,
    EventType.PAYMENT_CONFIRMED: _payment_confirmed,
    EventType.REVIEW_START: _simple,
    EventType.REVIEW_APPROVE: _simple,
    EventType.REVIEW_REJECT: _review_reject,
    EventType.ASSESSMENT_SCHEDULE: _assessment_schedule,
    EventType.ASSESSMENT_START: _assessment_start,
    EventType.ASSESSMENT_COMPLETE: _assessment_complete,
    EventType.REJECT: _close(WorkflowStatus.REJECTED, allow_draft=False),
    EventType.EXPIRE: _close(WorkflowStatus.EXPIRED, allow_draft=True),
    EventType.REVOKE: _close(WorkflowStatus.REVOKED, allow_draft=False),
}


def transition(
    current_status: str | WorkflowStatus,
    event: WorkflowEvent,
    context: TransitionContext | None = None,
) -> TransitionResult:
    ctx = context or TransitionContext()

    def fail(previous: WorkflowStatus | None, error: WorkflowError) -> TransitionResult:
        return TransitionResult(
            previous_status=previous,
            status=None,
            revision_count=ctx.revision_count,
            event=event,
            error=error,
        )

    try:
        status = parse_workflow_status(current_status)
    except CorruptStateError as e:
        return fail(None, WorkflowError.corrupt(str(e)))

    if ctx.revision_count < 0:
        return fail(status, WorkflowError.corrupt(f"revision_count must be >= 0, got {ctx.revision_count}"))
    if ctx.max_free_revisions < 0:
        return fail(status, WorkflowError.corrupt(f"max_free_revisions must be >= 0, got {ctx.max_free_revisions}"))

    if is_terminal(status):
        return fail(status, WorkflowError.invalid(f"{status.value} is terminal"))

    handler = _HANDLERS.get(event.type)
    if handler is None:
        return fail(status, WorkflowError.invalid(f"unknown event {event.type!r}"))

    if ctx.actor_role is not None and not role_may_trigger(ctx.actor_role, event.type):
        return fail(
            status,
            WorkflowError.denied(f"role {ctx.actor_role.value} may not trigger {event.type.value}"),
        )

    step = handler(status, event, ctx)
    if isinstance(step, WorkflowError):
        return fail(status, step)

    next_status, revision_count = step
    return TransitionResult(
        previous_status=status,
        status=next_status,
        revision_count=revision_count,
        event=event,
    )
