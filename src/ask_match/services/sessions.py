"""Session phase state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from ask_match.config import GameRules
from ask_match.domain.models import (
    ACTIVE_PHASES,
    Category,
    DeadlineKind,
    ParticipantRecord,
    Phase,
    PromptRecord,
    SessionRecord,
)
from ask_match.services.events import EventPublisher
from ask_match.services.locks import SessionLocks
from ask_match.services.matches import ChoiceRepository, MatchCalculator
from ask_match.services.participants import ParticipantRepository
from ask_match.services.timers import RoundTimer

if TYPE_CHECKING:
    from ask_match.services.snapshots import SnapshotBuilder

_logger = logging.getLogger(__name__)

LOBBY_TIMEOUT_REASON = "Not enough players joined in time"


class SessionRepository(Protocol):
    """Persistence interface for sessions, participations and prompts."""

    def create_session(self) -> SessionRecord:
        """Create a session in the lobby phase and return it."""

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""

    def list_sessions(self, phases: set[Phase]) -> list[SessionRecord]:
        """Return sessions in the given phases, oldest first."""

    def list_recent_sessions(self, limit: int) -> list[SessionRecord]:
        """Return the most recently created sessions."""

    def transition(  # noqa: PLR0913
        self,
        session_id: UUID,
        expected: Phase,
        target: Phase,
        changed_at: datetime,
        *,
        total_items: int | None = None,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        closed_reason: str | None = None,
    ) -> bool:
        """Move the session to target only if it is still in expected."""

    def add_participation(self, session_id: UUID, participant_id: UUID) -> None:
        """Attach a participant to a session."""

    def list_participant_ids(self, session_id: UUID) -> list[UUID]:
        """Return participant ids of a session in join order."""

    def find_active_session_id(self, participant_id: UUID) -> UUID | None:
        """Return the non-terminal session the participant is in, if any."""

    def create_prompt(
        self, session_id: UUID, author_id: UUID, text: str, ordinal: int
    ) -> PromptRecord:
        """Create a prompt and return it."""

    def get_prompt(self, prompt_id: UUID) -> PromptRecord | None:
        """Return a prompt by id, if present."""

    def list_prompts(self, session_id: UUID) -> list[PromptRecord]:
        """Return the prompts of a session ordered by ordinal then creation."""

    def set_prompt_ordinal(self, prompt_id: UUID, ordinal: int) -> None:
        """Renumber a prompt."""


def load_players(
    sessions: SessionRepository,
    participants: ParticipantRepository,
    session_id: UUID,
) -> list[ParticipantRecord]:
    """Return the participants of a session in join order."""
    ids = sessions.list_participant_ids(session_id)
    by_id = {
        participant.id: participant
        for participant in participants.list_participants(ids)
    }
    return [by_id[participant_id] for participant_id in ids if participant_id in by_id]


def count_by_category(players: list[ParticipantRecord]) -> dict[Category, int]:
    counts = dict.fromkeys(Category, 0)
    for player in players:
        if player.category is not None:
            counts[player.category] += 1
    return counts


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionStateMachine:
    """Owns the phase of every session and the legal moves between phases.

    Every transition takes the phase it expects to leave. If the stored phase
    no longer matches, the transition returns False and changes nothing, which
    is how a deadline and the last submission racing for the same move are
    resolved. Transition methods expect the caller to hold the session lock;
    ``on_deadline`` takes it itself.
    """

    repository: SessionRepository
    participant_repository: ParticipantRepository
    choice_repository: ChoiceRepository
    match_calculator: MatchCalculator
    snapshot_builder: SnapshotBuilder
    publisher: EventPublisher
    timers: RoundTimer
    locks: SessionLocks
    rules: GameRules

    async def start(self, session_id: UUID) -> bool:
        """lobby -> roster: renumber prompts, freeze the item count."""
        session = self.repository.get_session(session_id)
        if session is None or session.phase is not Phase.LOBBY:
            return False
        prompts = self.repository.list_prompts(session_id)
        for ordinal, prompt in enumerate(prompts, start=1):
            if prompt.ordinal != ordinal:
                self.repository.set_prompt_ordinal(prompt.id, ordinal)
        now = _now()
        if not self.repository.transition(
            session_id,
            Phase.LOBBY,
            Phase.ROSTER,
            now,
            total_items=len(prompts),
            started_at=now,
        ):
            return False
        _logger.info(
            "Session started: session=%s phase=roster total_items=%s",
            session_id,
            len(prompts),
        )
        self._arm(session_id, DeadlineKind.ROSTER)
        await self.broadcast(session_id)
        return True

    async def begin_collecting(self, session_id: UUID) -> bool:
        """roster -> collecting."""
        if not self.repository.transition(
            session_id, Phase.ROSTER, Phase.COLLECTING, _now()
        ):
            return False
        _logger.info("Session advanced: session=%s phase=collecting", session_id)
        self._arm(session_id, DeadlineKind.COLLECTING)
        await self.broadcast(session_id)
        return True

    async def begin_deciding(self, session_id: UUID) -> bool:
        """collecting -> deciding, whether or not every response arrived."""
        if not self.repository.transition(
            session_id, Phase.COLLECTING, Phase.DECIDING, _now()
        ):
            return False
        _logger.info("Session advanced: session=%s phase=deciding", session_id)
        self._arm(session_id, DeadlineKind.DECIDING)
        await self.broadcast(session_id)
        return True

    async def finish(self, session_id: UUID) -> bool:
        """deciding -> results: default missing voters, then compute matches."""
        session = self.repository.get_session(session_id)
        if session is None or session.phase is not Phase.DECIDING:
            return False
        for participant_id in self.repository.list_participant_ids(session_id):
            self.choice_repository.ensure_final_choice(session_id, participant_id)
        self.match_calculator.compute(session_id)
        now = _now()
        if not self.repository.transition(
            session_id, Phase.DECIDING, Phase.RESULTS, now, ended_at=now
        ):
            return False
        _logger.info("Session finished: session=%s phase=results", session_id)
        self.timers.cancel(session_id)
        await self.broadcast(session_id)
        return True

    async def close(self, session_id: UUID, reason: str) -> bool:
        """lobby -> closed, when the lobby deadline passes under capacity."""
        now = _now()
        if not self.repository.transition(
            session_id,
            Phase.LOBBY,
            Phase.CLOSED,
            now,
            ended_at=now,
            closed_reason=reason,
        ):
            return False
        _logger.info("Lobby closed: session=%s reason=%s", session_id, reason)
        self.timers.cancel(session_id)
        await self.publisher.session_closed(session_id, reason)
        await self.broadcast(session_id)
        return True

    async def start_if_ready(self, session_id: UUID) -> bool:
        """Start the session when the capacity thresholds are met."""
        players = load_players(
            self.repository, self.participant_repository, session_id
        )
        counts = count_by_category(players)
        reached_max = all(
            count >= self.rules.max_per_category for count in counts.values()
        )
        reached_min = all(
            count >= self.rules.min_per_category for count in counts.values()
        )
        if reached_max or (self.rules.auto_start_on_minimum and reached_min):
            return await self.start(session_id)
        return False

    async def on_deadline(self, session_id: UUID, kind: DeadlineKind) -> None:
        """Force the transition a deadline stands for; stale fires are no-ops."""
        async with self.locks.for_session(session_id):
            session = self.repository.get_session(session_id)
            if session is None or DeadlineKind.for_phase(session.phase) is not kind:
                return
            _logger.info(
                "Deadline reached: session=%s kind=%s", session_id, kind.value
            )
            if kind is DeadlineKind.LOBBY:
                await self._lobby_deadline(session_id)
            elif kind is DeadlineKind.ROSTER:
                await self.begin_collecting(session_id)
            elif kind is DeadlineKind.COLLECTING:
                await self.begin_deciding(session_id)
            else:
                await self.finish(session_id)

    def arm_lobby(self, session_id: UUID) -> None:
        self._arm(session_id, DeadlineKind.LOBBY)

    def resume(self) -> int:
        """Re-arm deadlines for sessions persisted in a non-terminal phase."""
        now = _now()
        resumed = 0
        for session in self.repository.list_sessions(set(ACTIVE_PHASES)):
            kind = DeadlineKind.for_phase(session.phase)
            if kind is None:
                continue
            elapsed = (now - session.phase_changed_at).total_seconds()
            remaining = max(self.rules.deadline_for(kind) - elapsed, 0.0)
            self.timers.arm(session.id, kind, remaining, self.on_deadline)
            resumed += 1
        if resumed:
            _logger.info("Resumed deadlines for %s sessions", resumed)
        return resumed

    async def broadcast(self, session_id: UUID) -> None:
        """Push a fresh snapshot to every client of the session."""
        snapshot = self.snapshot_builder.build(session_id)
        if snapshot is not None:
            await self.publisher.snapshot_changed(session_id, snapshot)

    async def _lobby_deadline(self, session_id: UUID) -> None:
        players = load_players(
            self.repository, self.participant_repository, session_id
        )
        counts = count_by_category(players)
        if all(count >= self.rules.min_per_category for count in counts.values()):
            await self.start(session_id)
        else:
            await self.close(session_id, LOBBY_TIMEOUT_REASON)

    def _arm(self, session_id: UUID, kind: DeadlineKind) -> None:
        self.timers.arm(
            session_id, kind, self.rules.deadline_for(kind), self.on_deadline
        )
