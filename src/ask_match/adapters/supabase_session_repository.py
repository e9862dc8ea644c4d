"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from ask_match.domain.models import ACTIVE_PHASES, Phase, PromptRecord, SessionRecord
from ask_match.services.sessions import SessionRepository

_SESSION_COLUMNS = (
    "id, phase, total_items, created_at, phase_changed_at, "
    "started_at, ended_at, closed_reason"
)
_PROMPT_COLUMNS = "id, session_id, author_id, text, ordinal, created_at"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for sessions, participations and prompts."""

    client: Client

    def create_session(self) -> SessionRecord:
        """Create a lobby session row and return it."""
        now = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table("game_sessions")
            .insert(
                {
                    "phase": Phase.LOBBY.value,
                    "total_items": 0,
                    "created_at": now,
                    "phase_changed_at": now,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _parse_session(response.data[0])

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("game_sessions")
            .select(_SESSION_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def list_sessions(self, phases: set[Phase]) -> list[SessionRecord]:
        """Return sessions in the given phases, oldest first."""
        response = (
            self.client.table("game_sessions")
            .select(_SESSION_COLUMNS)
            .in_("phase", sorted(phase.value for phase in phases))
            .order("created_at")
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

    def list_recent_sessions(self, limit: int) -> list[SessionRecord]:
        """Return the most recently created sessions."""
        response = (
            self.client.table("game_sessions")
            .select(_SESSION_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

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
        """Update the phase only where it still equals expected."""
        payload: dict[str, object] = {
            "phase": target.value,
            "phase_changed_at": changed_at.isoformat(),
        }
        if total_items is not None:
            payload["total_items"] = total_items
        if started_at is not None:
            payload["started_at"] = started_at.isoformat()
        if ended_at is not None:
            payload["ended_at"] = ended_at.isoformat()
        if closed_reason is not None:
            payload["closed_reason"] = closed_reason
        response = (
            self.client.table("game_sessions")
            .update(payload)
            .eq("id", str(session_id))
            .eq("phase", expected.value)
            .execute()
        )
        return bool(response.data)

    def add_participation(self, session_id: UUID, participant_id: UUID) -> None:
        """Create the participation row for a participant."""
        self.client.table("participations").insert(
            {
                "session_id": str(session_id),
                "participant_id": str(participant_id),
                "joined_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()

    def list_participant_ids(self, session_id: UUID) -> list[UUID]:
        """Return participant ids in join order."""
        response = (
            self.client.table("participations")
            .select("participant_id")
            .eq("session_id", str(session_id))
            .order("joined_at")
            .execute()
        )
        return [UUID(row["participant_id"]) for row in response.data or []]

    def find_active_session_id(self, participant_id: UUID) -> UUID | None:
        """Return the non-terminal session the participant is in, if any."""
        participations = (
            self.client.table("participations")
            .select("session_id")
            .eq("participant_id", str(participant_id))
            .execute()
        )
        session_ids = [row["session_id"] for row in participations.data or []]
        if not session_ids:
            return None
        response = (
            self.client.table("game_sessions")
            .select("id")
            .in_("id", session_ids)
            .in_("phase", sorted(phase.value for phase in ACTIVE_PHASES))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return UUID(response.data[0]["id"])

    def create_prompt(
        self, session_id: UUID, author_id: UUID, text: str, ordinal: int
    ) -> PromptRecord:
        """Create a prompt row and return it."""
        response = (
            self.client.table("prompts")
            .insert(
                {
                    "session_id": str(session_id),
                    "author_id": str(author_id),
                    "text": text,
                    "ordinal": ordinal,
                    "created_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create prompt")
        return _parse_prompt(response.data[0])

    def get_prompt(self, prompt_id: UUID) -> PromptRecord | None:
        """Return a prompt by id, if present."""
        response = (
            self.client.table("prompts")
            .select(_PROMPT_COLUMNS)
            .eq("id", str(prompt_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_prompt(response.data[0])

    def list_prompts(self, session_id: UUID) -> list[PromptRecord]:
        """Return prompts ordered by ordinal, then creation."""
        response = (
            self.client.table("prompts")
            .select(_PROMPT_COLUMNS)
            .eq("session_id", str(session_id))
            .order("ordinal")
            .order("created_at")
            .execute()
        )
        return [_parse_prompt(row) for row in response.data or []]

    def set_prompt_ordinal(self, prompt_id: UUID, ordinal: int) -> None:
        """Renumber a prompt."""
        self.client.table("prompts").update({"ordinal": ordinal}).eq(
            "id", str(prompt_id)
        ).execute()


def _parse_datetime(raw: object) -> datetime | None:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def _parse_session(row: dict[str, object]) -> SessionRecord:
    created_at = _parse_datetime(row.get("created_at")) or datetime.now(tz=UTC)
    return SessionRecord(
        id=UUID(str(row["id"])),
        phase=Phase(row["phase"]),
        total_items=int(row.get("total_items") or 0),
        created_at=created_at,
        phase_changed_at=_parse_datetime(row.get("phase_changed_at")) or created_at,
        started_at=_parse_datetime(row.get("started_at")),
        ended_at=_parse_datetime(row.get("ended_at")),
        closed_reason=row.get("closed_reason"),
    )


def _parse_prompt(row: dict[str, object]) -> PromptRecord:
    return PromptRecord(
        id=UUID(str(row["id"])),
        session_id=UUID(str(row["session_id"])),
        author_id=UUID(str(row["author_id"])),
        text=str(row["text"]),
        ordinal=int(row.get("ordinal") or 0),
        created_at=_parse_datetime(row.get("created_at")) or datetime.now(tz=UTC),
    )
