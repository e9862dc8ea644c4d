"""Participant registry."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from ask_match.domain.errors import NotFound, PolicyRejected
from ask_match.domain.models import Category, ParticipantRecord

_logger = logging.getLogger(__name__)


class ParticipantRepository(Protocol):
    """Persistence interface for participants."""

    def get_by_telegram_id(self, telegram_user_id: int) -> ParticipantRecord | None:
        """Return the participant for a Telegram user id, if present."""

    def get_participant(self, participant_id: UUID) -> ParticipantRecord | None:
        """Return a participant by id, if present."""

    def list_participants(self, participant_ids: list[UUID]) -> list[ParticipantRecord]:
        """Return the participants with the given ids."""

    def create_participant(
        self,
        telegram_user_id: int,
        first_name: str,
        username: str | None,
        photo_url: str | None,
    ) -> ParticipantRecord:
        """Create and return a new participant."""

    def update_profile(
        self,
        participant_id: UUID,
        first_name: str,
        username: str | None,
        photo_url: str | None,
    ) -> ParticipantRecord:
        """Refresh display fields and return the updated record."""

    def set_category(self, participant_id: UUID, category: Category) -> None:
        """Persist the declared category."""


class ActiveSessionLookup(Protocol):
    """Finds the non-terminal session a participant is attached to."""

    def find_active_session_id(self, participant_id: UUID) -> UUID | None:
        """Return the active session id, if any."""


@dataclass
class ParticipantService:
    """Resolves callers to participant records and manages categories."""

    repository: ParticipantRepository
    sessions: ActiveSessionLookup

    def ensure_participant(
        self,
        telegram_user_id: int,
        first_name: str,
        username: str | None = None,
        photo_url: str | None = None,
    ) -> ParticipantRecord:
        """Create the participant if needed, refreshing the profile otherwise."""
        existing = self.repository.get_by_telegram_id(telegram_user_id)
        if existing is None:
            created = self.repository.create_participant(
                telegram_user_id=telegram_user_id,
                first_name=first_name,
                username=username,
                photo_url=photo_url,
            )
            _logger.info("Participant registered: id=%s", created.id)
            return created
        if (existing.first_name, existing.username, existing.photo_url) == (
            first_name,
            username,
            photo_url,
        ):
            return existing
        return self.repository.update_profile(
            existing.id,
            first_name=first_name,
            username=username,
            photo_url=photo_url,
        )

    def get(self, participant_id: UUID) -> ParticipantRecord | None:
        """Return a participant by id."""
        return self.repository.get_participant(participant_id)

    def require(self, participant_id: UUID) -> ParticipantRecord:
        """Return a participant or raise NotFound."""
        participant = self.repository.get_participant(participant_id)
        if participant is None:
            raise NotFound("Participant not found")
        return participant

    def set_category(
        self, participant_id: UUID, category: Category
    ) -> ParticipantRecord:
        """Declare a category; changing it during an active game is refused."""
        participant = self.require(participant_id)
        if participant.category is category:
            return participant
        active_session_id = self.sessions.find_active_session_id(participant_id)
        if participant.category is not None and active_session_id is not None:
            raise PolicyRejected("Cannot change category during an active game")
        self.repository.set_category(participant_id, category)
        return self.require(participant_id)
