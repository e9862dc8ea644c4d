"""Domain models for the matching game."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class Category(Enum):
    """The two participant groups a session is balanced across."""

    A = "a"
    B = "b"

    def opposite(self) -> "Category":
        """Return the other category."""
        return Category.B if self is Category.A else Category.A


class Phase(Enum):
    """Session phases in the order a session moves through them."""

    LOBBY = "lobby"
    ROSTER = "roster"
    COLLECTING = "collecting"
    DECIDING = "deciding"
    RESULTS = "results"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        return self in {Phase.RESULTS, Phase.CLOSED}

    @property
    def index(self) -> int:
        """Position in the phase order; closed sits after results."""
        return list(Phase).index(self)


ACTIVE_PHASES = frozenset(phase for phase in Phase if not phase.is_terminal)


class DeadlineKind(Enum):
    """Which phase a wall-clock deadline belongs to."""

    LOBBY = "lobby"
    ROSTER = "roster"
    COLLECTING = "collecting"
    DECIDING = "deciding"

    @classmethod
    def for_phase(cls, phase: Phase) -> "DeadlineKind | None":
        try:
            return cls(phase.value)
        except ValueError:
            return None


@dataclass(frozen=True)
class ParticipantRecord:
    """A person who can join sessions."""

    id: UUID
    telegram_user_id: int
    first_name: str
    username: str | None = None
    photo_url: str | None = None
    category: Category | None = None


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted game session."""

    id: UUID
    phase: Phase
    total_items: int
    created_at: datetime
    phase_changed_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    closed_reason: str | None = None


@dataclass(frozen=True)
class PromptRecord:
    """A question authored by a participant at join time."""

    id: UUID
    session_id: UUID
    author_id: UUID
    text: str
    ordinal: int
    created_at: datetime


@dataclass(frozen=True)
class ResponseRecord:
    """An answer to a prompt, unique per (prompt, author)."""

    id: UUID
    prompt_id: UUID
    author_id: UUID
    text: str


@dataclass(frozen=True)
class FinalChoiceRecord:
    """A voter's single pick, or None for an explicit skip."""

    session_id: UUID
    voter_id: UUID
    target_id: UUID | None


@dataclass(frozen=True)
class MatchRecord:
    """A mutual pick; participant_a_id sorts before participant_b_id."""

    session_id: UUID
    participant_a_id: UUID
    participant_b_id: UUID


@dataclass(frozen=True)
class AbuseReport:
    """A user-submitted report against another participant."""

    id: UUID
    reporter_id: UUID
    reported_id: UUID
    reason: str
    content_ref: str | None
    created_at: datetime
