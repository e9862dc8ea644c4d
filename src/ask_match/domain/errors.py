"""Rejection taxonomy for game operations."""

from dataclasses import dataclass
from enum import Enum


class RejectionKind(Enum):
    """Why an operation was refused."""

    VALIDATION = "validation"
    POLICY = "policy"
    NOT_FOUND = "not_found"


class GameRejection(Exception):
    """Raised inside the orchestrator when an operation must be refused."""

    kind = RejectionKind.POLICY

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def to_rejection(self) -> "Rejection":
        return Rejection(kind=self.kind, reason=self.reason)


class ValidationRejected(GameRejection):
    """Bad input shape or length."""

    kind = RejectionKind.VALIDATION


class PolicyRejected(GameRejection):
    """A game rule forbids the operation right now."""

    kind = RejectionKind.POLICY


class NotFound(GameRejection):
    """Unknown session, prompt or participant."""

    kind = RejectionKind.NOT_FOUND


@dataclass(frozen=True)
class Rejection:
    """Rejection value returned across the session boundary."""

    kind: RejectionKind
    reason: str
