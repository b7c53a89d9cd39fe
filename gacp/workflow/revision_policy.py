from __future__ import annotations

from dataclasses import dataclass

from .status import WorkflowStatus

DEFAULT_MAX_FREE_REVISIONS = 3


@dataclass(frozen=True)
class RevisionOutcome:
    status: WorkflowStatus
    revision_count: int


@dataclass(frozen=True)
class RevisionPolicy:
    """Free vs. paid correction cycles after a rejection.

    The (max_free_revisions + 1)-th rejection is the first paid one.
    """

    max_free_revisions: int = DEFAULT_MAX_FREE_REVISIONS

    def requires_payment(self, revision_count: int) -> bool:
        return revision_count > self.max_free_revisions

    def on_rejection(self, revision_count: int) -> RevisionOutcome:
        new_count = revision_count + 1
        if self.requires_payment(new_count):
            return RevisionOutcome(WorkflowStatus.REJECTED_PAYMENT_REQUIRED, new_count)
        return RevisionOutcome(WorkflowStatus.REVISION_REQUESTED, new_count)

    def free_revisions_remaining(self, revision_count: int) -> int:
        return max(self.max_free_revisions - revision_count, 0)

    def is_last_free_revision(self, revision_count: int) -> bool:
        # True while the applicant is working on the final free correction;
        # the next rejection will require payment.
        return revision_count == self.max_free_revisions
