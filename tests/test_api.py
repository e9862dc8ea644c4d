"""Tests for the HTTP and WebSocket surface."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketDisconnect

from ask_match.api.app import create_app
from tests.conftest import FakeTelegramClient

_ADMIN = {"X-Admin-Token": "admin-token"}


def _register(client: TestClient, telegram_user_id: int, name: str) -> str:
    response = client.post(
        "/api/participants",
        json={"telegram_user_id": telegram_user_id, "first_name": name},
    )
    assert response.status_code == 200
    return response.json()["id"]


def _declare(client: TestClient, participant_id: str, category: str) -> None:
    response = client.post(
        "/api/participants/me/category",
        json={"category": category},
        headers={"X-Participant-Id": participant_id},
    )
    assert response.status_code == 200
    assert response.json()["category"] == category


def test_health_and_command_sync(container) -> None:
    telegram_client = container.telegram_client
    with TestClient(create_app(container)) as client:
        response = client.get("/health")

    assert response.json() == {"status": "ok"}
    assert telegram_client.commands[0]["command"] == "start"
    assert telegram_client.menu_button == {
        "type": "web_app",
        "text": "Play",
        "web_app": {"url": "https://game.example.com"},
    }


def test_webhook_start_registers_participant(container) -> None:
    telegram_client: FakeTelegramClient = container.telegram_client
    payload = {
        "update_id": 1,
        "message": {
            "message_id": 10,
            "date": 1700000000,
            "chat": {"id": 99, "type": "private"},
            "from": {"id": 123, "is_bot": False, "first_name": "Test"},
            "text": "/start",
        },
    }

    with TestClient(create_app(container)) as client:
        response = client.post("/telegram/webhook", json=payload)
        help_payload = {**payload, "update_id": 2}
        help_payload["message"] = {**payload["message"], "text": "/help@AskMatchBot"}
        client.post("/telegram/webhook", json=help_payload)

    assert response.status_code == 200
    assert container.participant_service.repository.get_by_telegram_id(123)
    assert [chat_id for chat_id, _ in telegram_client.messages] == [99, 99]
    assert "How it works" in telegram_client.messages[1][1]


def test_join_and_snapshot_over_rest(container) -> None:
    with TestClient(create_app(container)) as client:
        participant_id = _register(client, 1, "Ann")
        headers = {"X-Participant-Id": participant_id}

        not_declared = client.post(
            "/api/lobby/join", json={"prompt_text": "Why so?"}, headers=headers
        )
        assert not_declared.status_code == 409
        assert not_declared.json() == {
            "error": "Must declare category first",
            "kind": "policy",
        }

        _declare(client, participant_id, "a")
        too_short = client.post(
            "/api/lobby/join", json={"prompt_text": "no"}, headers=headers
        )
        assert too_short.status_code == 400

        joined = client.post(
            "/api/lobby/join", json={"prompt_text": "Why so?"}, headers=headers
        )
        assert joined.status_code == 200
        session_id = joined.json()["session_id"]
        snapshot = joined.json()["snapshot"]
        assert snapshot["phase"] == "lobby"
        assert snapshot["participants_a"][0]["first_name"] == "Ann"
        assert snapshot["deadline"]["kind"] == "lobby"

        fetched = client.get(f"/api/sessions/{session_id}")
        assert fetched.json()["session_id"] == session_id

        me = client.get("/api/participants/me", headers=headers)
        assert me.json()["category"] == "a"

        early = client.post(f"/api/sessions/{session_id}/roster-ready")
        assert early.status_code == 409

        matches = client.get(f"/api/sessions/{session_id}/matches")
        assert matches.json() == {"matches": []}


def test_unknown_resources_return_404(container) -> None:
    with TestClient(create_app(container)) as client:
        session = client.get(f"/api/sessions/{uuid4()}")
        participant = client.get(
            "/api/participants/me", headers={"X-Participant-Id": str(uuid4())}
        )

    assert session.status_code == 404
    assert session.json()["kind"] == "not_found"
    assert participant.status_code == 404


def test_missing_participant_header_is_rejected(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post("/api/lobby/join", json={"prompt_text": "Why so?"})

    assert response.status_code == 422


def test_report_endpoint(container) -> None:
    with TestClient(create_app(container)) as client:
        reporter = _register(client, 1, "Ann")
        reported = _register(client, 2, "Bob")
        response = client.post(
            "/api/reports",
            json={"reported_id": reported, "reason": "Offensive answer"},
            headers={"X-Participant-Id": reporter},
        )
        listed = client.get("/admin/reports", headers=_ADMIN)

    assert response.status_code == 200
    assert response.json()["reason"] == "Offensive answer"
    assert listed.json()["reports"][0]["reported_id"] == reported


def test_admin_requires_token(container) -> None:
    with TestClient(create_app(container)) as client:
        denied = client.get("/admin/sessions")
        allowed = client.get("/admin/sessions", headers=_ADMIN)

    assert denied.status_code == 401
    assert allowed.json() == {"sessions": []}


def test_websocket_streams_snapshots(container) -> None:
    with TestClient(create_app(container)) as client:
        ann = _register(client, 1, "Ann")
        bob = _register(client, 2, "Bob")
        _declare(client, ann, "a")
        _declare(client, bob, "b")
        joined = client.post(
            "/api/lobby/join",
            json={"prompt_text": "Why so?"},
            headers={"X-Participant-Id": ann},
        )
        session_id = joined.json()["session_id"]

        with client.websocket_connect(
            f"/ws/sessions/{session_id}?participant_id={ann}"
        ) as websocket:
            first = websocket.receive_json()
            assert first["type"] == "snapshot-changed"
            assert first["snapshot"]["phase"] == "lobby"

            websocket.send_json({"type": "ping"})
            assert _next_of_type(websocket, "pong") == {"type": "pong"}

            client.post(
                "/api/lobby/join",
                json={"prompt_text": "How come?"},
                headers={"X-Participant-Id": bob},
            )
            update = _next_of_type(websocket, "snapshot-changed")
            assert len(update["snapshot"]["participants_b"]) == 1

        sessions = client.get("/admin/sessions", headers=_ADMIN).json()["sessions"]
        assert sessions[0]["id"] == session_id
        assert sessions[0]["timer_armed"] is True


def test_websocket_refuses_outsiders(container) -> None:
    with TestClient(create_app(container)) as client:
        ann = _register(client, 1, "Ann")
        _declare(client, ann, "a")
        joined = client.post(
            "/api/lobby/join",
            json={"prompt_text": "Why so?"},
            headers={"X-Participant-Id": ann},
        )
        session_id = joined.json()["session_id"]

        with pytest.raises(WebSocketDisconnect) as refused:
            with client.websocket_connect(
                f"/ws/sessions/{session_id}?participant_id={uuid4()}"
            ) as websocket:
                websocket.receive_json()

    assert refused.value.code == 4403


def _next_of_type(websocket, message_type: str) -> dict[str, object]:
    """Skip countdown ticks until a message of the given type arrives."""
    while True:
        message = websocket.receive_json()
        if message["type"] == message_type:
            return message


def test_websocket_ignores_malformed_frames(container) -> None:
    with TestClient(create_app(container)) as client:
        ann = _register(client, 1, "Ann")
        _declare(client, ann, "a")
        joined = client.post(
            "/api/lobby/join",
            json={"prompt_text": "Why so?"},
            headers={"X-Participant-Id": ann},
        )
        session_id = joined.json()["session_id"]

        with client.websocket_connect(
            f"/ws/sessions/{session_id}?participant_id={ann}"
        ) as websocket:
            assert websocket.receive_json()["type"] == "snapshot-changed"
            websocket.send_text("not json{")
            websocket.send_json({"type": "ping"})
            assert _next_of_type(websocket, "pong") == {"type": "pong"}
