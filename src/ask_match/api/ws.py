"""WebSocket hub pushing session events to connected clients."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ask_match.domain.models import DeadlineKind
from ask_match.domain.snapshots import Snapshot

if TYPE_CHECKING:
    from ask_match.containers import AppContainer

_logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])


@dataclass
class ConnectionHub:
    """Tracks open sockets per session and fans out events to them."""

    _sessions: dict[UUID, dict[UUID, WebSocket]] = field(default_factory=dict)

    async def connect(
        self, session_id: UUID, participant_id: UUID, websocket: WebSocket
    ) -> None:
        await websocket.accept()
        self._sessions.setdefault(session_id, {})[participant_id] = websocket
        _logger.debug(
            "Client connected: session=%s participant=%s total=%s",
            session_id,
            participant_id,
            self.count(session_id),
        )

    def disconnect(
        self,
        session_id: UUID,
        participant_id: UUID,
        websocket: WebSocket | None = None,
    ) -> None:
        """Forget a client; with a socket given, only if it is still current."""
        connections = self._sessions.get(session_id, {})
        if websocket is not None and connections.get(participant_id) is not websocket:
            return
        connections.pop(participant_id, None)
        if not connections:
            self._sessions.pop(session_id, None)

    def count(self, session_id: UUID) -> int:
        return len(self._sessions.get(session_id, {}))

    async def send_to(
        self, session_id: UUID, participant_id: UUID, message: dict[str, object]
    ) -> None:
        """Send a message to one client, dropping it if the send fails."""
        websocket = self._sessions.get(session_id, {}).get(participant_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except Exception:
            _logger.warning(
                "Send failed: session=%s participant=%s", session_id, participant_id
            )
            self.disconnect(session_id, participant_id)

    async def broadcast(self, session_id: UUID, message: dict[str, object]) -> None:
        """Send a message to every client of a session."""
        for participant_id in list(self._sessions.get(session_id, {})):
            await self.send_to(session_id, participant_id, message)

    async def snapshot_changed(self, session_id: UUID, snapshot: Snapshot) -> None:
        await self.broadcast(session_id, snapshot_message(snapshot))

    async def countdown_tick(
        self, session_id: UUID, kind: DeadlineKind, seconds_remaining: int
    ) -> None:
        await self.broadcast(
            session_id,
            {
                "type": "countdown-tick",
                "session_id": str(session_id),
                "kind": kind.value,
                "seconds_remaining": seconds_remaining,
            },
        )

    async def session_closed(self, session_id: UUID, reason: str) -> None:
        await self.broadcast(
            session_id,
            {
                "type": "session-closed",
                "session_id": str(session_id),
                "reason": reason,
            },
        )


def snapshot_message(snapshot: Snapshot) -> dict[str, object]:
    return {
        "type": "snapshot-changed",
        "session_id": str(snapshot.session_id),
        "snapshot": snapshot.to_dict(),
    }


@router.websocket("/ws/sessions/{session_id}")
async def session_socket(
    websocket: WebSocket,
    session_id: UUID,
    participant_id: UUID = Query(...),
) -> None:
    """Stream session events to one participant.

    The current snapshot is sent on connect. Afterwards the only message a
    client sends is ``{"type": "ping"}``, answered with ``{"type": "pong"}``;
    frames that are not JSON are ignored.
    """
    container: AppContainer = websocket.app.state.container
    snapshot = container.game_service.snapshot_builder.build(session_id)
    if snapshot is None:
        await websocket.close(code=4404, reason="Session not found")
        return
    members = {
        player.id for player in snapshot.participants_a + snapshot.participants_b
    }
    if participant_id not in members:
        await websocket.close(code=4403, reason="Not a participant of this session")
        return

    hub = container.hub
    await hub.connect(session_id, participant_id, websocket)
    await hub.send_to(session_id, participant_id, snapshot_message(snapshot))
    try:
        while True:
            try:
                data = json.loads(await websocket.receive_text())
            except ValueError:
                _logger.warning(
                    "Ignoring malformed frame: session=%s participant=%s",
                    session_id,
                    participant_id,
                )
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await hub.send_to(session_id, participant_id, {"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(session_id, participant_id, websocket)
