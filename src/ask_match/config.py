"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

from ask_match.domain.models import DeadlineKind

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    supabase_url: str
    supabase_service_key: str
    admin_token: str
    webapp_url: str = "http://localhost:5173"
    lobby_deadline_seconds: float = 90
    roster_deadline_seconds: float = 15
    collecting_deadline_seconds: float = 60
    deciding_deadline_seconds: float = 30
    min_per_category: int = 2
    max_per_category: int = 3
    auto_start_on_minimum: bool = False
    timer_retry_seconds: float = 1.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


@dataclass(frozen=True)
class GameRules:
    """Capacity and timing rules the orchestrator runs with."""

    lobby_deadline_seconds: float = 90
    roster_deadline_seconds: float = 15
    collecting_deadline_seconds: float = 60
    deciding_deadline_seconds: float = 30
    min_per_category: int = 2
    max_per_category: int = 3
    auto_start_on_minimum: bool = False
    timer_retry_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.min_per_category < 1:
            raise ValueError("min_per_category must be at least 1")
        if self.min_per_category > self.max_per_category:
            raise ValueError("min_per_category cannot exceed max_per_category")
        deadlines = (
            self.lobby_deadline_seconds,
            self.roster_deadline_seconds,
            self.collecting_deadline_seconds,
            self.deciding_deadline_seconds,
        )
        if any(seconds <= 0 for seconds in deadlines):
            raise ValueError("deadlines must be positive")

    def deadline_for(self, kind: DeadlineKind) -> float:
        """Return the deadline length in seconds for a phase kind."""
        return {
            DeadlineKind.LOBBY: self.lobby_deadline_seconds,
            DeadlineKind.ROSTER: self.roster_deadline_seconds,
            DeadlineKind.COLLECTING: self.collecting_deadline_seconds,
            DeadlineKind.DECIDING: self.deciding_deadline_seconds,
        }[kind]

    @classmethod
    def from_settings(cls, settings: Settings) -> "GameRules":
        """Build rules from loaded settings."""
        return cls(
            lobby_deadline_seconds=settings.lobby_deadline_seconds,
            roster_deadline_seconds=settings.roster_deadline_seconds,
            collecting_deadline_seconds=settings.collecting_deadline_seconds,
            deciding_deadline_seconds=settings.deciding_deadline_seconds,
            min_per_category=settings.min_per_category,
            max_per_category=settings.max_per_category,
            auto_start_on_minimum=settings.auto_start_on_minimum,
            timer_retry_seconds=settings.timer_retry_seconds,
        )
