"""Supabase-backed participant repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from ask_match.domain.models import Category, ParticipantRecord
from ask_match.services.participants import ParticipantRepository

_COLUMNS = "id, telegram_user_id, first_name, username, photo_url, category"


@dataclass
class SupabaseParticipantRepository(ParticipantRepository):
    """Supabase implementation for participant persistence."""

    client: Client

    def get_by_telegram_id(self, telegram_user_id: int) -> ParticipantRecord | None:
        """Return the participant for a Telegram user id, if present."""
        response = (
            self.client.table("participants")
            .select(_COLUMNS)
            .eq("telegram_user_id", telegram_user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_participant(response.data[0])

    def get_participant(self, participant_id: UUID) -> ParticipantRecord | None:
        """Return a participant by id, if present."""
        response = (
            self.client.table("participants")
            .select(_COLUMNS)
            .eq("id", str(participant_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_participant(response.data[0])

    def list_participants(self, participant_ids: list[UUID]) -> list[ParticipantRecord]:
        """Return the participants with the given ids."""
        if not participant_ids:
            return []
        response = (
            self.client.table("participants")
            .select(_COLUMNS)
            .in_("id", [str(participant_id) for participant_id in participant_ids])
            .execute()
        )
        return [_parse_participant(row) for row in response.data or []]

    def create_participant(
        self,
        telegram_user_id: int,
        first_name: str,
        username: str | None,
        photo_url: str | None,
    ) -> ParticipantRecord:
        """Create a participant row and return it."""
        response = (
            self.client.table("participants")
            .insert(
                {
                    "telegram_user_id": telegram_user_id,
                    "first_name": first_name,
                    "username": username,
                    "photo_url": photo_url,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create participant")
        return _parse_participant(response.data[0])

    def update_profile(
        self,
        participant_id: UUID,
        first_name: str,
        username: str | None,
        photo_url: str | None,
    ) -> ParticipantRecord:
        """Refresh display fields and the last activity timestamp."""
        response = (
            self.client.table("participants")
            .update(
                {
                    "first_name": first_name,
                    "username": username,
                    "photo_url": photo_url,
                    "last_active_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", str(participant_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update participant")
        return _parse_participant(response.data[0])

    def set_category(self, participant_id: UUID, category: Category) -> None:
        """Persist the declared category."""
        self.client.table("participants").update({"category": category.value}).eq(
            "id", str(participant_id)
        ).execute()


def _parse_participant(row: dict[str, object]) -> ParticipantRecord:
    category = row.get("category")
    return ParticipantRecord(
        id=UUID(str(row["id"])),
        telegram_user_id=int(row["telegram_user_id"]),
        first_name=str(row.get("first_name") or ""),
        username=row.get("username"),
        photo_url=row.get("photo_url"),
        category=Category(category) if isinstance(category, str) else None,
    )
