from __future__ import annotations

from gacp.workflow.errors import ErrorKind, WorkflowError


class NotFoundError(LookupError):
    """Requested record does not exist."""

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class WorkflowRejected(Exception):
    """A workflow error surfaced to the caller of a service operation."""

    def __init__(self, error: WorkflowError) -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @classmethod
    def invalid(cls, message: str) -> "WorkflowRejected":
        return cls(WorkflowError.invalid(message))
