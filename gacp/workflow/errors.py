from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    # Recoverable: show the message, do not persist.
    INVALID_TRANSITION = "invalid_transition"
    PERMISSION_DENIED = "permission_denied"
    # Recoverable: re-read and retry once, then ask the user to refresh.
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    # Fatal: unknown value reached persistence. Alert operators.
    CORRUPT_STATE = "corrupt_state"


@dataclass(frozen=True)
class WorkflowError:
    kind: ErrorKind
    message: str

    @classmethod
    def invalid(cls, message: str) -> "WorkflowError":
        return cls(ErrorKind.INVALID_TRANSITION, message)

    @classmethod
    def denied(cls, message: str) -> "WorkflowError":
        return cls(ErrorKind.PERMISSION_DENIED, message)

    @classmethod
    def conflict(cls, message: str = "state changed, please refresh") -> "WorkflowError":
        return cls(ErrorKind.CONCURRENCY_CONFLICT, message)

    @classmethod
    def corrupt(cls, message: str) -> "WorkflowError":
        return cls(ErrorKind.CORRUPT_STATE, message)

    @property
    def is_fatal(self) -> bool:
        return self.kind == ErrorKind.CORRUPT_STATE
