"""Supabase repository for abuse reports."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from ask_match.domain.models import AbuseReport
from ask_match.services.reports import ReportRepository

_COLUMNS = "id, reporter_id, reported_id, reason, content_ref, created_at"


@dataclass
class SupabaseReportRepository(ReportRepository):
    """Supabase-backed report repository."""

    client: Client

    def create_report(
        self,
        reporter_id: UUID,
        reported_id: UUID,
        reason: str,
        content_ref: str | None,
    ) -> AbuseReport:
        """Create a report row and return it."""
        response = (
            self.client.table("abuse_reports")
            .insert(
                {
                    "reporter_id": str(reporter_id),
                    "reported_id": str(reported_id),
                    "reason": reason,
                    "content_ref": content_ref,
                    "created_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create report")
        return _parse_report(response.data[0])

    def list_reports(self, limit: int) -> list[AbuseReport]:
        response = (
            self.client.table("abuse_reports")
            .select(_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_report(row) for row in response.data or []]


def _parse_report(row: dict[str, object]) -> AbuseReport:
    created_at = row.get("created_at")
    return AbuseReport(
        id=UUID(str(row["id"])),
        reporter_id=UUID(str(row["reporter_id"])),
        reported_id=UUID(str(row["reported_id"])),
        reason=str(row["reason"]),
        content_ref=row.get("content_ref"),
        created_at=(
            datetime.fromisoformat(created_at)
            if isinstance(created_at, str)
            else datetime.now(tz=UTC)
        ),
    )
