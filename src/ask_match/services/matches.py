"""Mutual-pick match calculation."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from ask_match.domain.models import FinalChoiceRecord, MatchRecord

_logger = logging.getLogger(__name__)


class ChoiceRepository(Protocol):
    """Read access to final choices, plus defaulting of missing voters."""

    def list_final_choices(self, session_id: UUID) -> list[FinalChoiceRecord]:
        """Return every final choice recorded for a session."""

    def ensure_final_choice(self, session_id: UUID, voter_id: UUID) -> None:
        """Record a "no choice" for the voter unless a choice already exists."""


class MatchRepository(Protocol):
    """Persistence interface for computed matches."""

    def save_matches(self, session_id: UUID, matches: list[MatchRecord]) -> None:
        """Persist matches; saving the same pair again is a no-op."""

    def list_matches(self, session_id: UUID) -> list[MatchRecord]:
        """Return the matches of a session."""


def mutual_pairs(
    session_id: UUID, choices: list[FinalChoiceRecord]
) -> list[MatchRecord]:
    """Return one record per pair of voters who picked each other."""
    by_voter = {choice.voter_id: choice.target_id for choice in choices}
    matches: list[MatchRecord] = []
    seen: set[tuple[UUID, UUID]] = set()
    for voter_id, target_id in by_voter.items():
        if target_id is None or target_id == voter_id:
            continue
        if by_voter.get(target_id) != voter_id:
            continue
        pair = (min(voter_id, target_id), max(voter_id, target_id))
        if pair in seen:
            continue
        seen.add(pair)
        matches.append(
            MatchRecord(
                session_id=session_id,
                participant_a_id=pair[0],
                participant_b_id=pair[1],
            )
        )
    return matches


@dataclass
class MatchCalculator:
    """Computes and stores the matches of a finished session."""

    choice_repository: ChoiceRepository
    match_repository: MatchRepository

    def compute(self, session_id: UUID) -> list[MatchRecord]:
        """Derive mutual picks from the final choices and persist them."""
        choices = self.choice_repository.list_final_choices(session_id)
        matches = mutual_pairs(session_id, choices)
        self.match_repository.save_matches(session_id, matches)
        _logger.info(
            "Matches computed: session=%s voters=%s matches=%s",
            session_id,
            len(choices),
            len(matches),
        )
        return matches
