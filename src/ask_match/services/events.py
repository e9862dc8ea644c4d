"""Outbound events pushed to every connected client of a session."""

from typing import Protocol
from uuid import UUID

from ask_match.domain.models import DeadlineKind
from ask_match.domain.snapshots import Snapshot


class EventPublisher(Protocol):
    """Fan-out interface for session events."""

    async def snapshot_changed(self, session_id: UUID, snapshot: Snapshot) -> None:
        """Deliver a fresh snapshot."""

    async def countdown_tick(
        self, session_id: UUID, kind: DeadlineKind, seconds_remaining: int
    ) -> None:
        """Deliver a cosmetic countdown value."""

    async def session_closed(self, session_id: UUID, reason: str) -> None:
        """Tell clients the lobby was closed."""


