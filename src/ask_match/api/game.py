"""REST endpoints for the game operations."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse

from ask_match.api.schemas import (  # noqa: TC001
    CategoryRequest,
    FinalChoiceRequest,
    JoinLobbyRequest,
    RegisterParticipantRequest,
    ReportRequest,
    ResponseRequest,
)
from ask_match.domain.errors import Rejection, RejectionKind
from ask_match.domain.models import AbuseReport, ParticipantRecord

if TYPE_CHECKING:
    from ask_match.containers import AppContainer

router = APIRouter(prefix="/api", tags=["game"])

_STATUS_BY_KIND = {
    RejectionKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    RejectionKind.POLICY: status.HTTP_409_CONFLICT,
    RejectionKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


class RejectedRequest(Exception):
    """Carries a rejection out of an endpoint to the exception handler."""

    def __init__(self, rejection: Rejection) -> None:
        super().__init__(rejection.reason)
        self.rejection = rejection


async def rejected_request_handler(
    _request: Request, exc: RejectedRequest
) -> JSONResponse:
    """Render a rejection as ``{"error": reason, "kind": kind}``."""
    rejection = exc.rejection
    return JSONResponse(
        status_code=_STATUS_BY_KIND[rejection.kind],
        content={"error": rejection.reason, "kind": rejection.kind.value},
    )


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _accepted(result: Rejection | None) -> dict[str, str]:
    if isinstance(result, Rejection):
        raise RejectedRequest(result)
    return {"status": "ok"}


@router.post("/participants")
async def register_participant(
    body: RegisterParticipantRequest, request: Request
) -> dict[str, object]:
    """Create or refresh the participant for a Telegram user."""
    participant = _container(request).participant_service.ensure_participant(
        telegram_user_id=body.telegram_user_id,
        first_name=body.first_name,
        username=body.username,
        photo_url=body.photo_url,
    )
    return participant_payload(participant)


@router.get("/participants/me")
async def current_participant(
    request: Request, x_participant_id: UUID = Header()
) -> dict[str, object]:
    participant = _container(request).participant_service.get(x_participant_id)
    if participant is None:
        raise RejectedRequest(
            Rejection(kind=RejectionKind.NOT_FOUND, reason="Participant not found")
        )
    return participant_payload(participant)


@router.post("/participants/me/category")
async def declare_category(
    body: CategoryRequest, request: Request, x_participant_id: UUID = Header()
) -> dict[str, object]:
    result = _container(request).game_service.set_category(
        x_participant_id, body.category
    )
    if isinstance(result, Rejection):
        raise RejectedRequest(result)
    return participant_payload(result)


@router.post("/lobby/join")
async def join_lobby(
    body: JoinLobbyRequest, request: Request, x_participant_id: UUID = Header()
) -> dict[str, object]:
    """Join the oldest lobby with room, or open a new one."""
    result = await _container(request).game_service.join_lobby(
        x_participant_id, body.prompt_text
    )
    if isinstance(result, Rejection):
        raise RejectedRequest(result)
    return {
        "session_id": str(result.session_id),
        "snapshot": result.snapshot.to_dict(),
    }


@router.post("/sessions/{session_id}/roster-ready")
async def roster_ready(session_id: UUID, request: Request) -> dict[str, str]:
    result = await _container(request).game_service.acknowledge_roster(session_id)
    return _accepted(result)


@router.post("/sessions/{session_id}/responses")
async def submit_response(
    session_id: UUID,
    body: ResponseRequest,
    request: Request,
    x_participant_id: UUID = Header(),
) -> dict[str, str]:
    result = await _container(request).game_service.submit_response(
        session_id, x_participant_id, body.prompt_id, body.text
    )
    return _accepted(result)


@router.post("/sessions/{session_id}/final-choice")
async def submit_final_choice(
    session_id: UUID,
    body: FinalChoiceRequest,
    request: Request,
    x_participant_id: UUID = Header(),
) -> dict[str, str]:
    result = await _container(request).game_service.submit_final_choice(
        session_id, x_participant_id, body.target_id
    )
    return _accepted(result)


@router.get("/sessions/{session_id}")
async def session_snapshot(session_id: UUID, request: Request) -> dict[str, object]:
    result = await _container(request).game_service.get_snapshot(session_id)
    if isinstance(result, Rejection):
        raise RejectedRequest(result)
    return result.to_dict()


@router.get("/sessions/{session_id}/matches")
async def session_matches(session_id: UUID, request: Request) -> dict[str, object]:
    result = await _container(request).game_service.get_matches(session_id)
    if isinstance(result, Rejection):
        raise RejectedRequest(result)
    return {"matches": [match.to_dict() for match in result]}


@router.post("/reports")
async def submit_report(
    body: ReportRequest, request: Request, x_participant_id: UUID = Header()
) -> dict[str, object]:
    result = _container(request).game_service.submit_abuse_report(
        reporter_id=x_participant_id,
        reported_id=body.reported_id,
        reason=body.reason,
        content_ref=body.content_ref,
    )
    if isinstance(result, Rejection):
        raise RejectedRequest(result)
    return report_payload(result)


def participant_payload(participant: ParticipantRecord) -> dict[str, object]:
    return {
        "id": str(participant.id),
        "telegram_user_id": participant.telegram_user_id,
        "first_name": participant.first_name,
        "username": participant.username,
        "photo_url": participant.photo_url,
        "category": participant.category.value if participant.category else None,
    }


def report_payload(report: AbuseReport) -> dict[str, object]:
    return {
        "id": str(report.id),
        "reporter_id": str(report.reporter_id),
        "reported_id": str(report.reported_id),
        "reason": report.reason,
        "content_ref": report.content_ref,
        "created_at": report.created_at.isoformat(),
    }
