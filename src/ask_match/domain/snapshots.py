"""Client-facing projections of session state."""

from dataclasses import dataclass, field
from uuid import UUID

from ask_match.domain.models import Category, DeadlineKind, Phase


@dataclass(frozen=True)
class PlayerView:
    """Public profile of a session participant."""

    id: UUID
    first_name: str
    username: str | None
    photo_url: str | None
    category: Category

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "username": self.username,
            "photo_url": self.photo_url,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class PromptView:
    id: UUID
    author_id: UUID
    text: str
    ordinal: int


@dataclass(frozen=True)
class ResponseView:
    prompt_id: UUID
    author_id: UUID
    text: str


@dataclass(frozen=True)
class FinalChoiceView:
    voter_id: UUID
    target_id: UUID | None


@dataclass(frozen=True)
class DeadlineView:
    """The armed deadline, for countdown display."""

    kind: DeadlineKind
    seconds_remaining: int


@dataclass(frozen=True)
class MatchView:
    """A mutual pick with both participants' profiles."""

    participant_a: PlayerView
    participant_b: PlayerView

    def to_dict(self) -> dict[str, object]:
        return {
            "participant_a": self.participant_a.to_dict(),
            "participant_b": self.participant_b.to_dict(),
        }


@dataclass(frozen=True)
class Snapshot:
    """Full projection of a session delivered to every connected client."""

    session_id: UUID
    phase: Phase
    total_items: int
    participants_a: list[PlayerView]
    participants_b: list[PlayerView]
    prompts: list[PromptView] = field(default_factory=list)
    responses: list[ResponseView] = field(default_factory=list)
    final_choices: list[FinalChoiceView] = field(default_factory=list)
    matches: list[MatchView] = field(default_factory=list)
    deadline: DeadlineView | None = None

    def count_in(self, category: Category) -> int:
        if category is Category.A:
            return len(self.participants_a)
        return len(self.participants_b)

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON transports."""
        return {
            "session_id": str(self.session_id),
            "phase": self.phase.value,
            "total_items": self.total_items,
            "participants_a": [player.to_dict() for player in self.participants_a],
            "participants_b": [player.to_dict() for player in self.participants_b],
            "prompts": [
                {
                    "id": str(prompt.id),
                    "author_id": str(prompt.author_id),
                    "text": prompt.text,
                    "ordinal": prompt.ordinal,
                }
                for prompt in self.prompts
            ],
            "responses": [
                {
                    "prompt_id": str(response.prompt_id),
                    "author_id": str(response.author_id),
                    "text": response.text,
                }
                for response in self.responses
            ],
            "final_choices": [
                {
                    "voter_id": str(choice.voter_id),
                    "target_id": str(choice.target_id) if choice.target_id else None,
                }
                for choice in self.final_choices
            ],
            "matches": [match.to_dict() for match in self.matches],
            "deadline": (
                {
                    "kind": self.deadline.kind.value,
                    "seconds_remaining": self.deadline.seconds_remaining,
                }
                if self.deadline
                else None
            ),
        }
