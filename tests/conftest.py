"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from itertools import count
from uuid import UUID, uuid4

import pytest

from ask_match.adapters.telegram_client import TelegramClient
from ask_match.api.ws import ConnectionHub
from ask_match.config import GameRules, Settings
from ask_match.containers import (
    AppContainer,
    build_game_service,
    build_participant_service,
)
from ask_match.domain.models import (
    ACTIVE_PHASES,
    AbuseReport,
    Category,
    DeadlineKind,
    FinalChoiceRecord,
    MatchRecord,
    ParticipantRecord,
    Phase,
    PromptRecord,
    ResponseRecord,
    SessionRecord,
)
from ask_match.domain.snapshots import Snapshot
from ask_match.services.commands import HelpCommandHandler, StartCommandHandler
from ask_match.services.events import EventPublisher
from ask_match.services.game import GameService
from ask_match.services.matches import MatchRepository
from ask_match.services.participants import ParticipantRepository, ParticipantService
from ask_match.services.reports import ReportRepository
from ask_match.services.sessions import SessionRepository
from ask_match.services.submissions import SubmissionRepository

_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


@dataclass
class _Clock:
    """Strictly increasing timestamps so creation order is always observable."""

    _ticks: count = field(default_factory=count)

    def now(self) -> datetime:
        return _EPOCH + timedelta(milliseconds=next(self._ticks))


@dataclass
class InMemoryParticipantRepository(ParticipantRepository):
    """In-memory participant repository for tests."""

    participants: dict[UUID, ParticipantRecord] = field(default_factory=dict)

    def get_by_telegram_id(self, telegram_user_id: int) -> ParticipantRecord | None:
        for participant in self.participants.values():
            if participant.telegram_user_id == telegram_user_id:
                return participant
        return None

    def get_participant(self, participant_id: UUID) -> ParticipantRecord | None:
        return self.participants.get(participant_id)

    def list_participants(self, participant_ids: list[UUID]) -> list[ParticipantRecord]:
        return [
            self.participants[participant_id]
            for participant_id in participant_ids
            if participant_id in self.participants
        ]

    def create_participant(
        self,
        telegram_user_id: int,
        first_name: str,
        username: str | None,
        photo_url: str | None,
    ) -> ParticipantRecord:
        participant = ParticipantRecord(
            id=uuid4(),
            telegram_user_id=telegram_user_id,
            first_name=first_name,
            username=username,
            photo_url=photo_url,
        )
        self.participants[participant.id] = participant
        return participant

    def update_profile(
        self,
        participant_id: UUID,
        first_name: str,
        username: str | None,
        photo_url: str | None,
    ) -> ParticipantRecord:
        updated = replace(
            self.participants[participant_id],
            first_name=first_name,
            username=username,
            photo_url=photo_url,
        )
        self.participants[participant_id] = updated
        return updated

    def set_category(self, participant_id: UUID, category: Category) -> None:
        self.participants[participant_id] = replace(
            self.participants[participant_id], category=category
        )


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory sessions, participations and prompts for tests."""

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)
    participations: list[tuple[UUID, UUID]] = field(default_factory=list)
    prompts: dict[UUID, PromptRecord] = field(default_factory=dict)
    clock: _Clock = field(default_factory=_Clock)

    def create_session(self) -> SessionRecord:
        now = self.clock.now()
        session = SessionRecord(
            id=uuid4(),
            phase=Phase.LOBBY,
            total_items=0,
            created_at=now,
            phase_changed_at=now,
        )
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        return self.sessions.get(session_id)

    def list_sessions(self, phases: set[Phase]) -> list[SessionRecord]:
        matching = [s for s in self.sessions.values() if s.phase in phases]
        return sorted(matching, key=lambda session: session.created_at)

    def list_recent_sessions(self, limit: int) -> list[SessionRecord]:
        ordered = sorted(
            self.sessions.values(), key=lambda session: session.created_at
        )
        return list(reversed(ordered))[:limit]

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
        session = self.sessions.get(session_id)
        if session is None or session.phase is not expected:
            return False
        changes: dict[str, object] = {"phase": target, "phase_changed_at": changed_at}
        if total_items is not None:
            changes["total_items"] = total_items
        if started_at is not None:
            changes["started_at"] = started_at
        if ended_at is not None:
            changes["ended_at"] = ended_at
        if closed_reason is not None:
            changes["closed_reason"] = closed_reason
        self.sessions[session_id] = replace(session, **changes)
        return True

    def add_participation(self, session_id: UUID, participant_id: UUID) -> None:
        self.participations.append((session_id, participant_id))

    def list_participant_ids(self, session_id: UUID) -> list[UUID]:
        return [pid for sid, pid in self.participations if sid == session_id]

    def find_active_session_id(self, participant_id: UUID) -> UUID | None:
        for session_id, pid in self.participations:
            session = self.sessions.get(session_id)
            if pid == participant_id and session and session.phase in ACTIVE_PHASES:
                return session_id
        return None

    def create_prompt(
        self, session_id: UUID, author_id: UUID, text: str, ordinal: int
    ) -> PromptRecord:
        prompt = PromptRecord(
            id=uuid4(),
            session_id=session_id,
            author_id=author_id,
            text=text,
            ordinal=ordinal,
            created_at=self.clock.now(),
        )
        self.prompts[prompt.id] = prompt
        return prompt

    def get_prompt(self, prompt_id: UUID) -> PromptRecord | None:
        return self.prompts.get(prompt_id)

    def list_prompts(self, session_id: UUID) -> list[PromptRecord]:
        matching = [p for p in self.prompts.values() if p.session_id == session_id]
        return sorted(matching, key=lambda prompt: (prompt.ordinal, prompt.created_at))

    def set_prompt_ordinal(self, prompt_id: UUID, ordinal: int) -> None:
        self.prompts[prompt_id] = replace(self.prompts[prompt_id], ordinal=ordinal)

    def force_phase(self, session_id: UUID, phase: Phase) -> None:
        """Test helper: put a session straight into a phase."""
        self.sessions[session_id] = replace(
            self.sessions[session_id],
            phase=phase,
            phase_changed_at=datetime.now(tz=UTC),
        )


@dataclass
class InMemorySubmissionRepository(SubmissionRepository):
    """In-memory responses and final choices keyed like the real tables."""

    responses: dict[tuple[UUID, UUID], tuple[UUID, ResponseRecord]] = field(
        default_factory=dict
    )
    choices: dict[tuple[UUID, UUID], FinalChoiceRecord] = field(default_factory=dict)

    def upsert_response(
        self, session_id: UUID, prompt_id: UUID, author_id: UUID, text: str
    ) -> ResponseRecord:
        key = (prompt_id, author_id)
        existing = self.responses.get(key)
        record = ResponseRecord(
            id=existing[1].id if existing else uuid4(),
            prompt_id=prompt_id,
            author_id=author_id,
            text=text,
        )
        self.responses[key] = (session_id, record)
        return record

    def list_responses(self, session_id: UUID) -> list[ResponseRecord]:
        return [record for sid, record in self.responses.values() if sid == session_id]

    def upsert_final_choice(
        self, session_id: UUID, voter_id: UUID, target_id: UUID | None
    ) -> None:
        self.choices[(session_id, voter_id)] = FinalChoiceRecord(
            session_id=session_id, voter_id=voter_id, target_id=target_id
        )

    def ensure_final_choice(self, session_id: UUID, voter_id: UUID) -> None:
        self.choices.setdefault(
            (session_id, voter_id),
            FinalChoiceRecord(session_id=session_id, voter_id=voter_id, target_id=None),
        )

    def list_final_choices(self, session_id: UUID) -> list[FinalChoiceRecord]:
        return [c for (sid, _), c in self.choices.items() if sid == session_id]


@dataclass
class InMemoryMatchRepository(MatchRepository):
    """In-memory match repository; saving a pair twice keeps one row."""

    matches: dict[UUID, list[MatchRecord]] = field(default_factory=dict)

    def save_matches(self, session_id: UUID, matches: list[MatchRecord]) -> None:
        stored = self.matches.setdefault(session_id, [])
        for match in matches:
            if match not in stored:
                stored.append(match)

    def list_matches(self, session_id: UUID) -> list[MatchRecord]:
        return list(self.matches.get(session_id, []))


@dataclass
class InMemoryReportRepository(ReportRepository):
    """In-memory report repository for tests."""

    reports: list[AbuseReport] = field(default_factory=list)

    def create_report(
        self,
        reporter_id: UUID,
        reported_id: UUID,
        reason: str,
        content_ref: str | None,
    ) -> AbuseReport:
        report = AbuseReport(
            id=uuid4(),
            reporter_id=reporter_id,
            reported_id=reported_id,
            reason=reason,
            content_ref=content_ref,
            created_at=datetime.now(tz=UTC),
        )
        self.reports.append(report)
        return report

    def list_reports(self, limit: int) -> list[AbuseReport]:
        return list(reversed(self.reports))[:limit]


@dataclass
class RecordingPublisher(EventPublisher):
    """Publisher that keeps every outbound event."""

    snapshots: list[tuple[UUID, Snapshot]] = field(default_factory=list)
    ticks: list[tuple[UUID, DeadlineKind, int]] = field(default_factory=list)
    closed: list[tuple[UUID, str]] = field(default_factory=list)

    async def snapshot_changed(self, session_id: UUID, snapshot: Snapshot) -> None:
        self.snapshots.append((session_id, snapshot))

    async def countdown_tick(
        self, session_id: UUID, kind: DeadlineKind, seconds_remaining: int
    ) -> None:
        self.ticks.append((session_id, kind, seconds_remaining))

    async def session_closed(self, session_id: UUID, reason: str) -> None:
        self.closed.append((session_id, reason))

    def phases(self, session_id: UUID) -> list[Phase]:
        """Distinct phases broadcast for a session, in order."""
        seen: list[Phase] = []
        for sid, snapshot in self.snapshots:
            if sid == session_id and (not seen or seen[-1] is not snapshot.phase):
                seen.append(snapshot.phase)
        return seen


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    markups: list[dict | None] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        self.messages.append((chat_id, text))
        self.markups.append(reply_markup)

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button


@dataclass
class Stores:
    """Every in-memory store behind one game service."""

    participants: InMemoryParticipantRepository
    sessions: InMemorySessionRepository
    submissions: InMemorySubmissionRepository
    matches: InMemoryMatchRepository
    reports: InMemoryReportRepository
    publisher: RecordingPublisher


def make_game(
    rules: GameRules | None = None,
    publisher: EventPublisher | None = None,
    tick_interval: float = 0.01,
) -> tuple[GameService, Stores]:
    """Build a game service over fresh in-memory stores."""
    stores = Stores(
        participants=InMemoryParticipantRepository(),
        sessions=InMemorySessionRepository(),
        submissions=InMemorySubmissionRepository(),
        matches=InMemoryMatchRepository(),
        reports=InMemoryReportRepository(),
        publisher=RecordingPublisher(),
    )
    participant_service = build_participant_service(
        stores.participants, stores.sessions
    )
    game_service = build_game_service(
        session_repository=stores.sessions,
        participant_service=participant_service,
        submission_repository=stores.submissions,
        match_repository=stores.matches,
        report_repository=stores.reports,
        publisher=publisher or stores.publisher,
        rules=rules or GameRules(),
        tick_interval=tick_interval,
    )
    return game_service, stores


def add_player(
    game_service: GameService, category: Category, name: str = "Player"
) -> ParticipantRecord:
    """Register a participant with a declared category."""
    service: ParticipantService = game_service.participant_service
    telegram_user_id = len(service.repository.participants) + 1000
    participant = service.ensure_participant(
        telegram_user_id=telegram_user_id, first_name=name
    )
    return service.set_category(participant.id, category)


def seed_session(
    stores: Stores,
    players: list[ParticipantRecord],
    phase: Phase,
    prompt_authors: list[ParticipantRecord] | None = None,
) -> UUID:
    """Create a session with the given players and prompts already in a phase."""
    session = stores.sessions.create_session()
    authors = players if prompt_authors is None else prompt_authors
    for player in players:
        stores.sessions.add_participation(session.id, player.id)
    for ordinal, author in enumerate(authors, start=1):
        stores.sessions.create_prompt(
            session.id, author.id, f"Question from {author.first_name}?", ordinal
        )
    stores.sessions.force_phase(session.id, phase)
    return session.id


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        supabase_url="https://example.supabase.co",
        supabase_service_key="test.service.key",
        admin_token="admin-token",
        webapp_url="https://game.example.com",
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def game() -> tuple[GameService, Stores]:
    return make_game()


@pytest.fixture
def container(
    settings: Settings, telegram_client: FakeTelegramClient
) -> AppContainer:
    hub = ConnectionHub()
    game_service, _ = make_game(
        GameRules.from_settings(settings), publisher=hub, tick_interval=1.0
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        participant_service=game_service.participant_service,
        game_service=game_service,
        hub=hub,
        start_command_handler=StartCommandHandler(
            game_service.participant_service, telegram_client, settings.webapp_url
        ),
        help_command_handler=HelpCommandHandler(telegram_client),
        close_resources=close_resources,
    )
