"""Abuse report pass-through."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from ask_match.domain.models import AbuseReport
from ask_match.services.moderation import ModerationService

_logger = logging.getLogger(__name__)


class ReportRepository(Protocol):
    """Persistence interface for abuse reports."""

    def create_report(
        self,
        reporter_id: UUID,
        reported_id: UUID,
        reason: str,
        content_ref: str | None,
    ) -> AbuseReport:
        """Create a report row and return it."""

    def list_reports(self, limit: int) -> list[AbuseReport]:
        """Return the most recent reports."""


@dataclass
class ReportService:
    """Stores abuse reports regardless of any session phase."""

    repository: ReportRepository
    moderation: ModerationService

    def submit(
        self,
        reporter_id: UUID,
        reported_id: UUID,
        reason: str,
        content_ref: str | None = None,
    ) -> AbuseReport:
        report = self.repository.create_report(
            reporter_id=reporter_id,
            reported_id=reported_id,
            reason=self.moderation.check_report_reason(reason),
            content_ref=content_ref or None,
        )
        _logger.info(
            "Report submitted: reporter=%s reported=%s", reporter_id, reported_id
        )
        return report

    def list_recent(self, limit: int = 50) -> list[AbuseReport]:
        return self.repository.list_reports(limit)
