"""Session view builder."""

from dataclasses import dataclass
from uuid import UUID

from ask_match.domain.models import Category, ParticipantRecord, Phase
from ask_match.domain.snapshots import (
    DeadlineView,
    FinalChoiceView,
    MatchView,
    PlayerView,
    PromptView,
    ResponseView,
    Snapshot,
)
from ask_match.services.matches import MatchRepository
from ask_match.services.participants import ParticipantRepository
from ask_match.services.sessions import SessionRepository, load_players
from ask_match.services.submissions import SubmissionRepository
from ask_match.services.timers import RoundTimer

_QA_PHASES = {Phase.COLLECTING, Phase.DECIDING, Phase.RESULTS}
_CHOICE_PHASES = {Phase.DECIDING, Phase.RESULTS}


def player_view(participant: ParticipantRecord) -> PlayerView:
    return PlayerView(
        id=participant.id,
        first_name=participant.first_name,
        username=participant.username,
        photo_url=participant.photo_url,
        category=participant.category or Category.A,
    )


@dataclass
class SnapshotBuilder:
    """Projects persisted session facts into the client snapshot."""

    session_repository: SessionRepository
    participant_repository: ParticipantRepository
    submission_repository: SubmissionRepository
    match_repository: MatchRepository
    timers: RoundTimer

    def build(self, session_id: UUID) -> Snapshot | None:
        """Return the snapshot of a session, or None when it doesn't exist."""
        session = self.session_repository.get_session(session_id)
        if session is None:
            return None
        players = load_players(
            self.session_repository, self.participant_repository, session_id
        )
        snapshot = Snapshot(
            session_id=session.id,
            phase=session.phase,
            total_items=session.total_items,
            participants_a=[
                player_view(p) for p in players if p.category is Category.A
            ],
            participants_b=[
                player_view(p) for p in players if p.category is Category.B
            ],
            deadline=self._deadline(session_id),
        )
        if session.phase in _QA_PHASES:
            snapshot.prompts.extend(
                PromptView(
                    id=prompt.id,
                    author_id=prompt.author_id,
                    text=prompt.text,
                    ordinal=prompt.ordinal,
                )
                for prompt in self.session_repository.list_prompts(session_id)
            )
            snapshot.responses.extend(
                ResponseView(
                    prompt_id=response.prompt_id,
                    author_id=response.author_id,
                    text=response.text,
                )
                for response in self.submission_repository.list_responses(session_id)
            )
        if session.phase in _CHOICE_PHASES:
            snapshot.final_choices.extend(
                FinalChoiceView(voter_id=choice.voter_id, target_id=choice.target_id)
                for choice in self.submission_repository.list_final_choices(
                    session_id
                )
            )
        if session.phase is Phase.RESULTS:
            snapshot.matches.extend(self.match_views(session_id, players))
        return snapshot

    def match_views(
        self, session_id: UUID, players: list[ParticipantRecord] | None = None
    ) -> list[MatchView]:
        """Return the matches of a session with both profiles attached."""
        if players is None:
            players = load_players(
                self.session_repository, self.participant_repository, session_id
            )
        by_id = {player.id: player_view(player) for player in players}
        views = []
        for match in self.match_repository.list_matches(session_id):
            first = by_id.get(match.participant_a_id)
            second = by_id.get(match.participant_b_id)
            if first and second:
                views.append(MatchView(participant_a=first, participant_b=second))
        return views

    def _deadline(self, session_id: UUID) -> DeadlineView | None:
        kind = self.timers.armed_kind(session_id)
        seconds = self.timers.seconds_remaining(session_id)
        if kind is None or seconds is None:
            return None
        return DeadlineView(kind=kind, seconds_remaining=seconds)
