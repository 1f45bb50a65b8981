"""
WebSocket router for change notifications.

A connected client view receives `{"type": "invalidate", "table": ...}`
whenever deliverable status, photo comments or checklist toggles change
for the client it watches, and re-fetches that data.
"""

import asyncio
from uuid import UUID

import jwt
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from app.core.deps import COOKIE_NAME
from app.core.errors import NotFoundError
from app.core.security import decode_access_token
from app.core.websocket import manager
from app.db.session import SessionLocal
from app.services import client_service

router = APIRouter(prefix="/ws", tags=["WebSocket"])


def _actor_from_token(token: str | None) -> UUID | None:
    if not token:
        return None
    try:
        return UUID(decode_access_token(token)["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        return None


def _load_client(client_id: UUID):
    # Session is released before the connection is held open
    with SessionLocal() as db:
        return client_service.get_client(db, client_id)


@router.websocket("/clients/{client_id}/changes")
async def websocket_client_changes(
    websocket: WebSocket,
    client_id: UUID,
    token: str | None = Query(None),
    shared: bool = Query(False),
):
    """
    Change notifications for one client.

    Photographer views authenticate with ?token=... or the session cookie
    and must own the client; shared views only need the client id.
    """
    try:
        client = await run_in_threadpool(_load_client, client_id)
    except NotFoundError:
        await websocket.close(code=4004, reason="Client not found")
        return

    if not shared:
        actor_id = _actor_from_token(token) or _actor_from_token(
            websocket.cookies.get(COOKIE_NAME)
        )
        if not actor_id:
            await websocket.close(code=4001, reason="Authentication required")
            return
        if actor_id != client.photographer_id:
            await websocket.close(code=4004, reason="Client not found")
            return

    # Subscribed before accept, so no change between the two is missed
    queue = await manager.connect(websocket, client_id)
    pump = asyncio.create_task(manager.pump(websocket, queue))

    try:
        # Keep connection alive, handle incoming messages (heartbeat/pings)
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    finally:
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
        await manager.disconnect(websocket, client_id)
