"""WebSocket change-notification tests."""

import uuid

import pytest
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.core.security import create_access_token
from app.core.websocket import manager
from app.main import app
from app.routers import websocket as ws_router
from app.services import deliverable_service


@pytest.fixture
def lookup_sessions(db_engine, monkeypatch):
    """Sessions opened by the websocket owner lookup."""
    opened = []
    factory = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    def open_session():
        session = factory()
        opened.append(session)
        return session

    monkeypatch.setattr(ws_router, "SessionLocal", open_session)
    return opened


@pytest.fixture
def ws_client(lookup_sessions):
    with TestClient(app) as test_client:
        yield test_client


def test_photographer_receives_invalidation(ws_client, db, small_client, test_auth):
    url = f"/ws/clients/{small_client.id}/changes?token={test_auth.token}"
    with ws_client.websocket_connect(url) as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"

        deliverable_service.submit(db, small_client, "A")

        message = websocket.receive_json()
        assert message["type"] == "invalidate"
        assert message["table"] == "deliverable_status"
        assert message["client_id"] == str(small_client.id)


def test_shared_view_needs_no_token(ws_client, small_client):
    with ws_client.websocket_connect(f"/ws/clients/{small_client.id}/changes?shared=true") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"


def test_missing_token_closes_4001(ws_client, small_client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with ws_client.websocket_connect(f"/ws/clients/{small_client.id}/changes") as websocket:
            websocket.receive_text()

    assert exc_info.value.code == 4001


def test_other_photographer_closes_4004(ws_client, small_client):
    token = create_access_token(uuid.uuid4())
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with ws_client.websocket_connect(
            f"/ws/clients/{small_client.id}/changes?token={token}"
        ) as websocket:
            websocket.receive_text()

    assert exc_info.value.code == 4004


def test_unknown_client_closes_4004(ws_client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with ws_client.websocket_connect(f"/ws/clients/{uuid.uuid4()}/changes?shared=true") as websocket:
            websocket.receive_text()

    assert exc_info.value.code == 4004


def test_owner_lookup_session_closed_while_connected(ws_client, small_client, test_auth, lookup_sessions):
    url = f"/ws/clients/{small_client.id}/changes?token={test_auth.token}"
    with ws_client.websocket_connect(url) as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"

        assert len(lookup_sessions) == 1
        assert not lookup_sessions[0].in_transaction()


def test_failed_pump_does_not_break_close(ws_client, small_client, monkeypatch):
    calls = []

    async def broken_pump(websocket, queue):
        calls.append(websocket)
        raise RuntimeError("send failed")

    monkeypatch.setattr(manager, "pump", broken_pump)

    with ws_client.websocket_connect(f"/ws/clients/{small_client.id}/changes?shared=true") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"

    assert len(calls) == 1
