"""Lobby matchmaking."""

import logging
from dataclasses import dataclass
from uuid import UUID

from ask_match.config import GameRules
from ask_match.domain.errors import PolicyRejected
from ask_match.domain.models import Category, ParticipantRecord, Phase
from ask_match.services.locks import SessionLocks
from ask_match.services.moderation import ModerationService
from ask_match.services.participants import ParticipantService
from ask_match.services.sessions import (
    SessionRepository,
    SessionStateMachine,
    count_by_category,
    load_players,
)

_logger = logging.getLogger(__name__)


@dataclass
class Matchmaker:
    """Places joining participants into the oldest lobby with room for them."""

    session_repository: SessionRepository
    participant_service: ParticipantService
    moderation: ModerationService
    state_machine: SessionStateMachine
    locks: SessionLocks
    rules: GameRules

    async def join(self, participant_id: UUID, prompt_text: str) -> UUID:
        """Attach the participant and their prompt to a lobby; return its id."""
        participant = self.participant_service.require(participant_id)
        category = participant.category
        if category is None:
            raise PolicyRejected("Must declare category first")
        if self.session_repository.find_active_session_id(participant_id):
            raise PolicyRejected("Already in an active session")
        prompt = self.moderation.check_prompt(prompt_text)

        async with self.locks.matchmaking:
            # The category may have changed while waiting for the lock.
            participant = self.participant_service.require(participant_id)
            category = participant.category
            if category is None:
                raise PolicyRejected("Must declare category first")
            if self.session_repository.find_active_session_id(participant_id):
                raise PolicyRejected("Already in an active session")
            for lobby in self.session_repository.list_sessions({Phase.LOBBY}):
                async with self.locks.for_session(lobby.id):
                    if await self._attach(lobby.id, participant, category, prompt):
                        return lobby.id

            session = self.session_repository.create_session()
            _logger.info("Lobby created: session=%s", session.id)
            async with self.locks.for_session(session.id):
                self.state_machine.arm_lobby(session.id)
                await self._attach(session.id, participant, category, prompt)
            return session.id

    async def _attach(
        self,
        session_id: UUID,
        participant: ParticipantRecord,
        category: Category,
        prompt: str,
    ) -> bool:
        session = self.session_repository.get_session(session_id)
        if session is None or session.phase is not Phase.LOBBY:
            return False
        players = load_players(
            self.session_repository,
            self.participant_service.repository,
            session_id,
        )
        if count_by_category(players)[category] >= self.rules.max_per_category:
            return False

        self.session_repository.add_participation(session_id, participant.id)
        ordinal = count_by_category(players)[category] + 1
        self.session_repository.create_prompt(
            session_id, participant.id, prompt, ordinal
        )
        _logger.info(
            "Participant joined: session=%s participant=%s category=%s",
            session_id,
            participant.id,
            category.value,
        )
        if not await self.state_machine.start_if_ready(session_id):
            await self.state_machine.broadcast(session_id)
        return True
