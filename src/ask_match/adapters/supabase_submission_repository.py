"""Supabase-backed responses and final choices."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from ask_match.domain.models import FinalChoiceRecord, ResponseRecord
from ask_match.services.submissions import SubmissionRepository


@dataclass
class SupabaseSubmissionRepository(SubmissionRepository):
    """Supabase implementation keyed by natural unique constraints."""

    client: Client

    def upsert_response(
        self, session_id: UUID, prompt_id: UUID, author_id: UUID, text: str
    ) -> ResponseRecord:
        """Insert or overwrite the response keyed by (prompt, author)."""
        response = (
            self.client.table("responses")
            .upsert(
                {
                    "session_id": str(session_id),
                    "prompt_id": str(prompt_id),
                    "author_id": str(author_id),
                    "text": text,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="prompt_id,author_id",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store response")
        return _parse_response(response.data[0])

    def list_responses(self, session_id: UUID) -> list[ResponseRecord]:
        response = (
            self.client.table("responses")
            .select("id, prompt_id, author_id, text")
            .eq("session_id", str(session_id))
            .execute()
        )
        return [_parse_response(row) for row in response.data or []]

    def upsert_final_choice(
        self, session_id: UUID, voter_id: UUID, target_id: UUID | None
    ) -> None:
        """Insert or overwrite the choice keyed by (session, voter)."""
        self.client.table("final_choices").upsert(
            {
                "session_id": str(session_id),
                "voter_id": str(voter_id),
                "target_id": str(target_id) if target_id else None,
            },
            on_conflict="session_id,voter_id",
        ).execute()

    def ensure_final_choice(self, session_id: UUID, voter_id: UUID) -> None:
        """Record a "no choice" unless the voter already has a row."""
        self.client.table("final_choices").upsert(
            {
                "session_id": str(session_id),
                "voter_id": str(voter_id),
                "target_id": None,
            },
            on_conflict="session_id,voter_id",
            ignore_duplicates=True,
        ).execute()

    def list_final_choices(self, session_id: UUID) -> list[FinalChoiceRecord]:
        response = (
            self.client.table("final_choices")
            .select("session_id, voter_id, target_id")
            .eq("session_id", str(session_id))
            .execute()
        )
        return [
            FinalChoiceRecord(
                session_id=UUID(str(row["session_id"])),
                voter_id=UUID(str(row["voter_id"])),
                target_id=UUID(str(row["target_id"])) if row.get("target_id") else None,
            )
            for row in response.data or []
        ]


def _parse_response(row: dict[str, object]) -> ResponseRecord:
    return ResponseRecord(
        id=UUID(str(row["id"])),
        prompt_id=UUID(str(row["prompt_id"])),
        author_id=UUID(str(row["author_id"])),
        text=str(row["text"]),
    )
