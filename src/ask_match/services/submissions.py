"""Answer and vote aggregation with phase completion detection."""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from ask_match.domain.errors import NotFound, PolicyRejected
from ask_match.domain.models import (
    Category,
    ParticipantRecord,
    Phase,
    ResponseRecord,
    SessionRecord,
)
from ask_match.services.matches import ChoiceRepository
from ask_match.services.moderation import ModerationService
from ask_match.services.participants import ParticipantRepository
from ask_match.services.sessions import (
    SessionRepository,
    SessionStateMachine,
    count_by_category,
    load_players,
)

_logger = logging.getLogger(__name__)


class SubmissionRepository(ChoiceRepository, Protocol):
    """Persistence interface for responses and final choices."""

    def upsert_response(
        self, session_id: UUID, prompt_id: UUID, author_id: UUID, text: str
    ) -> ResponseRecord:
        """Insert or overwrite the response keyed by (prompt, author)."""

    def list_responses(self, session_id: UUID) -> list[ResponseRecord]:
        """Return every response recorded in a session."""

    def upsert_final_choice(
        self, session_id: UUID, voter_id: UUID, target_id: UUID | None
    ) -> None:
        """Insert or overwrite the choice keyed by (session, voter)."""


@dataclass
class SubmissionAggregator:
    """Records responses and final choices and certifies phase completion."""

    session_repository: SessionRepository
    participant_repository: ParticipantRepository
    repository: SubmissionRepository
    moderation: ModerationService
    state_machine: SessionStateMachine

    async def record_response(
        self, session_id: UUID, participant_id: UUID, prompt_id: UUID, text: str
    ) -> None:
        """Store an answer; advance to deciding once every prompt is answered."""
        self._require_phase(session_id, Phase.COLLECTING, "collecting responses")
        players = self._players(session_id)
        responder = _member(players, participant_id)
        prompt = self.session_repository.get_prompt(prompt_id)
        if prompt is None or prompt.session_id != session_id:
            raise NotFound("Prompt not found")
        author = next((p for p in players if p.id == prompt.author_id), None)
        if author is None:
            raise NotFound("Prompt author not found")
        if responder.category is author.category:
            raise PolicyRejected("Cannot answer a prompt from your own category")
        cleaned = self.moderation.check_response(text)

        self.repository.upsert_response(session_id, prompt_id, participant_id, cleaned)
        _logger.info(
            "Response recorded: session=%s participant=%s prompt=%s",
            session_id,
            participant_id,
            prompt_id,
        )
        if self.responses_complete(session_id, players):
            await self.state_machine.begin_deciding(session_id)
            return
        await self.state_machine.broadcast(session_id)

    async def record_final_choice(
        self, session_id: UUID, participant_id: UUID, target_id: UUID | None
    ) -> None:
        """Store a final pick (None skips); finish once everyone has chosen."""
        self._require_phase(session_id, Phase.DECIDING, "accepting final choices")
        players = self._players(session_id)
        voter = _member(players, participant_id)
        if target_id is not None:
            target = next((p for p in players if p.id == target_id), None)
            if target is None:
                raise NotFound("Chosen participant is not in this session")
            if target.category is voter.category:
                raise PolicyRejected(
                    "Must choose a participant from the other category"
                )

        self.repository.upsert_final_choice(session_id, participant_id, target_id)
        _logger.info(
            "Final choice recorded: session=%s voter=%s target=%s",
            session_id,
            participant_id,
            target_id,
        )
        if self.choices_complete(session_id, players):
            await self.state_machine.finish(session_id)
            return
        await self.state_machine.broadcast(session_id)

    def responses_complete(
        self, session_id: UUID, players: list[ParticipantRecord] | None = None
    ) -> bool:
        """True when every prompt has an answer from each opposite participant."""
        if players is None:
            players = self._players(session_id)
        counts = count_by_category(players)
        categories: dict[UUID, Category | None] = {p.id: p.category for p in players}
        answered = Counter(
            response.prompt_id
            for response in self.repository.list_responses(session_id)
        )
        for prompt in self.session_repository.list_prompts(session_id):
            author_category = categories.get(prompt.author_id)
            if author_category is None:
                continue
            if answered[prompt.id] < counts[author_category.opposite()]:
                return False
        return True

    def choices_complete(
        self, session_id: UUID, players: list[ParticipantRecord] | None = None
    ) -> bool:
        """True when every participant has a final choice on record."""
        if players is None:
            players = self._players(session_id)
        choices = self.repository.list_final_choices(session_id)
        return len(choices) >= len(players)

    def _require_phase(
        self, session_id: UUID, phase: Phase, activity: str
    ) -> SessionRecord:
        session = self.session_repository.get_session(session_id)
        if session is None:
            raise NotFound("Session not found")
        if session.phase is not phase:
            raise PolicyRejected(f"Session is not {activity}")
        return session

    def _players(self, session_id: UUID) -> list[ParticipantRecord]:
        return load_players(
            self.session_repository, self.participant_repository, session_id
        )


def _member(
    players: list[ParticipantRecord], participant_id: UUID
) -> ParticipantRecord:
    for player in players:
        if player.id == participant_id:
            return player
    raise PolicyRejected("Not a participant of this session")
