"""Row-change notifications and the read-side freshness contract.

Writers publish `(table, client_id)` after commit. Readers never apply
deltas: a notification only marks the cached key stale, and the next
read of that key re-fetches the full current set.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Generic, Hashable, TypeVar
from uuid import UUID

from app.db.enums import ChangeTable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ChangeEvent:
    table: ChangeTable
    client_id: UUID
    event: str = "UPDATE"  # INSERT | UPDATE | DELETE
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict:
        return {
            "type": "invalidate",
            "table": self.table.value,
            "client_id": str(self.client_id),
            "event": self.event,
            "occurred_at": self.occurred_at.isoformat(),
        }


Callback = Callable[[ChangeEvent], None]


class ChangeFeed:
    """In-process publish/subscribe filtered by table and client id."""

    def __init__(self):
        # (table, client_id or None for all clients) -> callbacks
        self._subscribers: dict[tuple[ChangeTable, UUID | None], list[Callback]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: ChangeTable,
        callback: Callback,
        client_id: UUID | None = None,
    ) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        key = (table, client_id)
        with self._lock:
            self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(key, None)

        return unsubscribe

    def publish(self, table: ChangeTable, client_id: UUID, event: str = "UPDATE") -> None:
        change = ChangeEvent(table=table, client_id=client_id, event=event)
        with self._lock:
            callbacks = list(self._subscribers.get((table, client_id), []))
            callbacks += self._subscribers.get((table, None), [])

        for callback in callbacks:
            try:
                callback(change)
            except Exception:
                # One broken subscriber must not block the others
                logger.exception(f"Change subscriber failed for {table.value}")

    def subscriber_count(self, table: ChangeTable, client_id: UUID | None = None) -> int:
        with self._lock:
            return len(self._subscribers.get((table, client_id), []))


class FreshnessCache(Generic[T]):
    """
    Cache whose entries are only refreshed on read after being marked stale.

    `invalidate` never fetches; `get` fetches when the key is missing or
    stale.
    """

    def __init__(self):
        self._values: dict[Hashable, T] = {}
        self._stale: set[Hashable] = set()
        self._lock = threading.Lock()

    def get(self, key: Hashable, loader: Callable[[], T]) -> T:
        with self._lock:
            if key in self._values and key not in self._stale:
                return self._values[key]
        value = loader()
        with self._lock:
            self._values[key] = value
            self._stale.discard(key)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            if key in self._values:
                self._stale.add(key)

    def is_stale(self, key: Hashable) -> bool:
        with self._lock:
            return key not in self._values or key in self._stale

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._stale.clear()


feed = ChangeFeed()

# client id -> {deliverable name -> entry}
deliverable_status_cache: FreshnessCache[dict] = FreshnessCache()

feed.subscribe(
    ChangeTable.DELIVERABLE_STATUS,
    lambda change: deliverable_status_cache.invalidate(change.client_id),
)
