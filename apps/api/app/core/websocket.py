"""
WebSocket connection manager for change notifications.

Each connected view listens on one client id; published row changes are
forwarded as `invalidate` messages so the view re-fetches.
"""

from typing import Dict, Set
from uuid import UUID
import asyncio
import json
import logging

from fastapi import WebSocket

from app.db.enums import ChangeTable
from app.services.change_feed import ChangeEvent, ChangeFeed, feed

logger = logging.getLogger(__name__)

WATCHED_TABLES = (
    ChangeTable.DELIVERABLE_STATUS,
    ChangeTable.PHOTO_COMMENTS,
    ChangeTable.WORKFLOW_TOGGLES,
)


class ConnectionManager:
    """Manages WebSocket connections per client and their feed subscriptions."""

    def __init__(self, change_feed: ChangeFeed):
        self._feed = change_feed
        # client_id -> set of active WebSocket connections
        self._connections: Dict[UUID, Set[WebSocket]] = {}
        # websocket -> unsubscribe callables
        self._subscriptions: Dict[WebSocket, list] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, client_id: UUID) -> asyncio.Queue:
        """
        Subscribe, then accept.

        Returns the queue the endpoint drains; publishers run in worker
        threads so messages are handed over with call_soon_threadsafe.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def _forward(change: ChangeEvent) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, change.to_message())

        unsubscribers = [
            self._feed.subscribe(table, _forward, client_id=client_id)
            for table in WATCHED_TABLES
        ]
        async with self._lock:
            self._connections.setdefault(client_id, set()).add(websocket)
            self._subscriptions[websocket] = unsubscribers

        await websocket.accept()
        logger.info(
            f"Change feed connected; {self.get_connected_count(client_id)} watching client {client_id}"
        )
        return queue

    async def disconnect(self, websocket: WebSocket, client_id: UUID):
        """Remove a WebSocket connection and drop its subscriptions."""
        async with self._lock:
            for unsubscribe in self._subscriptions.pop(websocket, []):
                unsubscribe()
            if client_id in self._connections:
                self._connections[client_id].discard(websocket)
                if not self._connections[client_id]:
                    del self._connections[client_id]

    async def pump(self, websocket: WebSocket, queue: asyncio.Queue) -> None:
        """Forward queued change messages until the socket closes."""
        while True:
            message = await queue.get()
            await websocket.send_text(json.dumps(message))

    def get_connected_count(self, client_id: UUID) -> int:
        """Get the number of active connections watching a client."""
        return len(self._connections.get(client_id, set()))


# Global manager instance
manager = ConnectionManager(feed)
