"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from ask_match.adapters.supabase_match_repository import SupabaseMatchRepository
from ask_match.adapters.supabase_participant_repository import (
    SupabaseParticipantRepository,
)
from ask_match.adapters.supabase_report_repository import SupabaseReportRepository
from ask_match.adapters.supabase_session_repository import SupabaseSessionRepository
from ask_match.adapters.supabase_submission_repository import (
    SupabaseSubmissionRepository,
)
from ask_match.adapters.telegram_client import HttpxTelegramClient, TelegramClient
from ask_match.api.ws import ConnectionHub
from ask_match.config import GameRules, Settings
from ask_match.services.commands import HelpCommandHandler, StartCommandHandler
from ask_match.services.events import EventPublisher
from ask_match.services.game import GameService
from ask_match.services.locks import SessionLocks
from ask_match.services.matches import MatchCalculator, MatchRepository
from ask_match.services.matchmaking import Matchmaker
from ask_match.services.moderation import ModerationService
from ask_match.services.participants import ParticipantRepository, ParticipantService
from ask_match.services.reports import ReportRepository, ReportService
from ask_match.services.sessions import SessionRepository, SessionStateMachine
from ask_match.services.snapshots import SnapshotBuilder
from ask_match.services.submissions import SubmissionAggregator, SubmissionRepository
from ask_match.services.timers import RoundTimer


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    participant_service: ParticipantService
    game_service: GameService
    hub: ConnectionHub
    start_command_handler: StartCommandHandler
    help_command_handler: HelpCommandHandler
    close_resources: Callable[[], Awaitable[None]]


def build_game_service(  # noqa: PLR0913
    *,
    session_repository: SessionRepository,
    participant_service: ParticipantService,
    submission_repository: SubmissionRepository,
    match_repository: MatchRepository,
    report_repository: ReportRepository,
    publisher: EventPublisher,
    rules: GameRules,
    tick_interval: float = 1.0,
) -> GameService:
    """Wire the orchestrator services around the given stores."""
    participant_repository = participant_service.repository
    moderation = ModerationService()
    locks = SessionLocks()
    timers = RoundTimer(
        publisher=publisher,
        tick_interval=tick_interval,
        retry_interval=rules.timer_retry_seconds,
    )
    snapshot_builder = SnapshotBuilder(
        session_repository=session_repository,
        participant_repository=participant_repository,
        submission_repository=submission_repository,
        match_repository=match_repository,
        timers=timers,
    )
    state_machine = SessionStateMachine(
        repository=session_repository,
        participant_repository=participant_repository,
        choice_repository=submission_repository,
        match_calculator=MatchCalculator(submission_repository, match_repository),
        snapshot_builder=snapshot_builder,
        publisher=publisher,
        timers=timers,
        locks=locks,
        rules=rules,
    )
    return GameService(
        session_repository=session_repository,
        participant_service=participant_service,
        matchmaker=Matchmaker(
            session_repository=session_repository,
            participant_service=participant_service,
            moderation=moderation,
            state_machine=state_machine,
            locks=locks,
            rules=rules,
        ),
        state_machine=state_machine,
        aggregator=SubmissionAggregator(
            session_repository=session_repository,
            participant_repository=participant_repository,
            repository=submission_repository,
            moderation=moderation,
            state_machine=state_machine,
        ),
        snapshot_builder=snapshot_builder,
        report_service=ReportService(report_repository, moderation),
        locks=locks,
        timers=timers,
    )


def build_participant_service(
    participant_repository: ParticipantRepository,
    session_repository: SessionRepository,
) -> ParticipantService:
    return ParticipantService(
        repository=participant_repository, sessions=session_repository
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    participant_service = build_participant_service(
        SupabaseParticipantRepository(supabase_client), session_repository
    )
    hub = ConnectionHub()
    game_service = build_game_service(
        session_repository=session_repository,
        participant_service=participant_service,
        submission_repository=SupabaseSubmissionRepository(supabase_client),
        match_repository=SupabaseMatchRepository(supabase_client),
        report_repository=SupabaseReportRepository(supabase_client),
        publisher=hub,
        rules=GameRules.from_settings(resolved_settings),
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)

    async def close_resources() -> None:
        await telegram_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        participant_service=participant_service,
        game_service=game_service,
        hub=hub,
        start_command_handler=StartCommandHandler(
            participant_service, telegram_client, resolved_settings.webapp_url
        ),
        help_command_handler=HelpCommandHandler(telegram_client),
        close_resources=close_resources,
    )
