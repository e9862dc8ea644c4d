"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ask_match.api.game import report_payload

if TYPE_CHECKING:
    from ask_match.containers import AppContainer
    from ask_match.domain.models import SessionRecord

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request, limit: int = 20) -> dict[str, object]:
    """Return recent game sessions with their armed deadline, if any."""
    container: AppContainer = request.app.state.container
    game_service = container.game_service
    return {
        "sessions": [
            _session_payload(
                session, game_service.timers.armed_kind(session.id) is not None
            )
            for session in game_service.recent_sessions(limit)
        ]
    }


@router.get("/reports", dependencies=[Depends(require_admin)])
async def list_reports(request: Request, limit: int = 50) -> dict[str, object]:
    """Return recent abuse reports."""
    container: AppContainer = request.app.state.container
    reports = container.game_service.report_service.list_recent(limit)
    return {"reports": [report_payload(report) for report in reports]}


def _session_payload(session: SessionRecord, timer_armed: bool) -> dict[str, object]:
    return {
        "id": str(session.id),
        "phase": session.phase.value,
        "total_items": session.total_items,
        "created_at": session.created_at.isoformat(),
        "phase_changed_at": session.phase_changed_at.isoformat(),
        "started_at": session.started_at.isoformat() if session.started_at else None,
        "ended_at": session.ended_at.isoformat() if session.ended_at else None,
        "closed_reason": session.closed_reason,
        "timer_armed": timer_armed,
    }
