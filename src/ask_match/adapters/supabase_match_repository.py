"""Supabase repository for computed matches."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from ask_match.domain.models import MatchRecord
from ask_match.services.matches import MatchRepository


@dataclass
class SupabaseMatchRepository(MatchRepository):
    """Supabase-backed match repository."""

    client: Client

    def save_matches(self, session_id: UUID, matches: list[MatchRecord]) -> None:
        """Persist matches; an existing pair is left untouched."""
        if not matches:
            return
        self.client.table("matches").upsert(
            [
                {
                    "session_id": str(session_id),
                    "participant_a_id": str(match.participant_a_id),
                    "participant_b_id": str(match.participant_b_id),
                }
                for match in matches
            ],
            on_conflict="session_id,participant_a_id,participant_b_id",
            ignore_duplicates=True,
        ).execute()

    def list_matches(self, session_id: UUID) -> list[MatchRecord]:
        response = (
            self.client.table("matches")
            .select("session_id, participant_a_id, participant_b_id")
            .eq("session_id", str(session_id))
            .execute()
        )
        return [
            MatchRecord(
                session_id=UUID(str(row["session_id"])),
                participant_a_id=UUID(str(row["participant_a_id"])),
                participant_b_id=UUID(str(row["participant_b_id"])),
            )
            for row in response.data or []
        ]
