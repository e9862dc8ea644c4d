"""Inbound game operations.

Every operation here is a session boundary: rule violations raised inside the
orchestrator come back as a ``Rejection`` value instead of an exception.
Storage failures are not rejections and still propagate.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from ask_match.domain.errors import GameRejection, NotFound, PolicyRejected, Rejection
from ask_match.domain.models import (
    AbuseReport,
    Category,
    ParticipantRecord,
    Phase,
    SessionRecord,
)
from ask_match.domain.snapshots import MatchView, Snapshot
from ask_match.services.locks import SessionLocks
from ask_match.services.matchmaking import Matchmaker
from ask_match.services.participants import ParticipantService
from ask_match.services.reports import ReportService
from ask_match.services.sessions import SessionRepository, SessionStateMachine
from ask_match.services.snapshots import SnapshotBuilder
from ask_match.services.submissions import SubmissionAggregator
from ask_match.services.timers import RoundTimer

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    """Where a participant landed and what the session looks like now."""

    session_id: UUID
    snapshot: Snapshot


@dataclass
class GameService:
    """Facade over matchmaking, phases, submissions and views."""

    session_repository: SessionRepository
    participant_service: ParticipantService
    matchmaker: Matchmaker
    state_machine: SessionStateMachine
    aggregator: SubmissionAggregator
    snapshot_builder: SnapshotBuilder
    report_service: ReportService
    locks: SessionLocks
    timers: RoundTimer

    async def join_lobby(
        self, participant_id: UUID, prompt_text: str
    ) -> JoinResult | Rejection:
        """Place the participant in a lobby together with their prompt."""
        try:
            session_id = await self.matchmaker.join(participant_id, prompt_text)
        except GameRejection as exc:
            return _rejected("join_lobby", exc)
        snapshot = self.snapshot_builder.build(session_id)
        if snapshot is None:
            return NotFound("Session not found").to_rejection()
        return JoinResult(session_id=session_id, snapshot=snapshot)

    async def acknowledge_roster(self, session_id: UUID) -> Rejection | None:
        """Move a session from roster to collecting; repeats are no-ops."""
        async with self.locks.for_session(session_id):
            try:
                session = self.session_repository.get_session(session_id)
                if session is None:
                    raise NotFound("Session not found")
                if session.phase in {Phase.LOBBY, Phase.CLOSED}:
                    raise PolicyRejected("Session roster is not ready")
            except GameRejection as exc:
                return _rejected("acknowledge_roster", exc)
            await self.state_machine.begin_collecting(session_id)
        return None

    async def submit_response(
        self, session_id: UUID, participant_id: UUID, prompt_id: UUID, text: str
    ) -> Rejection | None:
        """Record an answer to a prompt; None means it was accepted."""
        async with self.locks.for_session(session_id):
            try:
                await self.aggregator.record_response(
                    session_id, participant_id, prompt_id, text
                )
            except GameRejection as exc:
                return _rejected("submit_response", exc)
        return None

    async def submit_final_choice(
        self, session_id: UUID, participant_id: UUID, target_id: UUID | None
    ) -> Rejection | None:
        """Record a final pick (None skips); None means it was accepted."""
        async with self.locks.for_session(session_id):
            try:
                await self.aggregator.record_final_choice(
                    session_id, participant_id, target_id
                )
            except GameRejection as exc:
                return _rejected("submit_final_choice", exc)
        return None

    async def get_snapshot(self, session_id: UUID) -> Snapshot | Rejection:
        snapshot = self.snapshot_builder.build(session_id)
        if snapshot is None:
            return NotFound("Session not found").to_rejection()
        return snapshot

    async def get_matches(self, session_id: UUID) -> list[MatchView] | Rejection:
        if self.session_repository.get_session(session_id) is None:
            return NotFound("Session not found").to_rejection()
        return self.snapshot_builder.match_views(session_id)

    def submit_abuse_report(
        self,
        reporter_id: UUID,
        reported_id: UUID,
        reason: str,
        content_ref: str | None = None,
    ) -> AbuseReport | Rejection:
        """Store a report; not gated by any session phase."""
        try:
            return self.report_service.submit(
                reporter_id, reported_id, reason, content_ref
            )
        except GameRejection as exc:
            return _rejected("submit_abuse_report", exc)

    def set_category(
        self, participant_id: UUID, category: Category
    ) -> ParticipantRecord | Rejection:
        try:
            return self.participant_service.set_category(participant_id, category)
        except GameRejection as exc:
            return _rejected("set_category", exc)

    def recent_sessions(self, limit: int = 20) -> list[SessionRecord]:
        return self.session_repository.list_recent_sessions(limit)

    def resume_sessions(self) -> int:
        """Re-arm deadlines of sessions left mid-game by a restart."""
        return self.state_machine.resume()

    def shutdown(self) -> None:
        self.timers.cancel_all()


def _rejected(operation: str, exc: GameRejection) -> Rejection:
    _logger.warning(
        "Rejected %s: kind=%s reason=%s", operation, exc.kind.value, exc.reason
    )
    return exc.to_rejection()
