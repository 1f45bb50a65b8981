"""
Deliverable review state per (client, deliverable name).

not-started -> pending-review -> approved, with revisions-needed reachable
from pending-review and leading back to pending-review. Writes are upserts
on the natural key and publish a deliverable_status change after commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import InvalidTransitionError, ValidationError
from app.core.structured_logging import build_log_context
from app.db.enums import ChangeTable, DeliverableState
from app.db.models import Client, DeliverableStatus
from app.db.session import commit_or_raise
from app.db.upsert import upsert
from app.services.change_feed import deliverable_status_cache, feed

logger = logging.getLogger(__name__)

CLIENT_VISIBLE_STATES = {DeliverableState.PENDING_REVIEW, DeliverableState.APPROVED}


@dataclass(frozen=True)
class DeliverableEntry:
    deliverable_name: str
    status: DeliverableState
    updated_at: datetime | None = None


def package_deliverables(client: Client) -> list[str]:
    """Deliverable names of the client's package, in catalogue order."""
    if client.package is None:
        return []
    return list(client.package.deliverables or [])


def _require_deliverable(client: Client, deliverable_name: str) -> str:
    name = (deliverable_name or "").strip()
    if not name:
        raise ValidationError("Deliverable name is required")
    if client.package is None:
        raise ValidationError("Client has no package, so no deliverables are defined")
    if name not in client.package.deliverables:
        raise ValidationError(f"'{name}' is not a deliverable of {client.package.name}")
    return name


# =============================================================================
# Reads
# =============================================================================

def load_status_map(db: Session, client_id: UUID) -> dict[str, DeliverableEntry]:
    """Stored rows for a client, straight from the database."""
    rows = db.execute(
        select(DeliverableStatus).where(DeliverableStatus.client_id == client_id)
    ).scalars().all()
    return {
        row.deliverable_name: DeliverableEntry(
            deliverable_name=row.deliverable_name,
            status=DeliverableState(row.status),
            updated_at=row.updated_at,
        )
        for row in rows
    }


def get_status_map(db: Session, client_id: UUID) -> dict[str, DeliverableEntry]:
    """Cached status map; re-fetched after any change notification for the client."""
    return deliverable_status_cache.get(client_id, lambda: load_status_map(db, client_id))


def list_deliverables(db: Session, client: Client) -> list[DeliverableEntry]:
    """Every package deliverable with its state; missing rows are not-started."""
    status_map = get_status_map(db, client.id)
    return [
        status_map.get(name) or DeliverableEntry(name, DeliverableState.NOT_STARTED)
        for name in package_deliverables(client)
    ]


def client_review_summary(db: Session, client: Client) -> dict:
    """Items the client can see (submitted or approved), in package order."""
    entries = list_deliverables(db, client)
    visible = [entry for entry in entries if entry.status in CLIENT_VISIBLE_STATES]
    return {
        "items": visible,
        "submitted_count": len(visible),
        "approved_count": sum(1 for e in visible if e.status == DeliverableState.APPROVED),
        "total_count": len(entries),
    }


# =============================================================================
# Writes
# =============================================================================

def _current_entry(db: Session, client_id: UUID, name: str) -> DeliverableEntry:
    row = db.execute(
        select(DeliverableStatus).where(
            DeliverableStatus.client_id == client_id,
            DeliverableStatus.deliverable_name == name,
        )
    ).scalar_one_or_none()
    if not row:
        return DeliverableEntry(name, DeliverableState.NOT_STARTED)
    return DeliverableEntry(name, DeliverableState(row.status), row.updated_at)


def set_status(
    db: Session,
    client: Client,
    deliverable_name: str,
    status: DeliverableState,
    actor_id: UUID | None = None,
) -> DeliverableEntry:
    """Upsert the row for (client, deliverable name) and notify subscribers."""
    name = _require_deliverable(client, deliverable_name)
    client_id = client.id

    upsert(
        db,
        DeliverableStatus,
        {"client_id": client_id, "deliverable_name": name, "status": status.value},
        conflict_columns=["client_id", "deliverable_name"],
        update_columns=["status"],
    )
    commit_or_raise(db, "update deliverable status")
    feed.publish(ChangeTable.DELIVERABLE_STATUS, client_id)

    logger.info(
        f"Deliverable status set to {status.value}",
        extra=build_log_context(user_id=actor_id, client_id=client_id),
    )
    return _current_entry(db, client_id, name)


def submit(db: Session, client: Client, deliverable_name: str, actor_id: UUID | None = None) -> DeliverableEntry:
    """not-started | revisions-needed -> pending-review; no-op when already pending."""
    name = _require_deliverable(client, deliverable_name)
    current = _current_entry(db, client.id, name)
    if current.status == DeliverableState.PENDING_REVIEW:
        return current
    if current.status == DeliverableState.APPROVED:
        raise InvalidTransitionError(f"'{name}' is already approved")
    return set_status(db, client, name, DeliverableState.PENDING_REVIEW, actor_id)


def approve(db: Session, client: Client, deliverable_name: str, actor_id: UUID | None = None) -> DeliverableEntry:
    """pending-review -> approved; no-op when already approved."""
    name = _require_deliverable(client, deliverable_name)
    current = _current_entry(db, client.id, name)
    if current.status == DeliverableState.APPROVED:
        return current
    if current.status != DeliverableState.PENDING_REVIEW:
        raise InvalidTransitionError(f"'{name}' has not been submitted for review")
    return set_status(db, client, name, DeliverableState.APPROVED, actor_id)


def request_revisions(
    db: Session,
    client: Client,
    deliverable_name: str,
    actor_id: UUID | None = None,
) -> DeliverableEntry:
    """pending-review -> revisions-needed; no-op when revisions are already requested."""
    name = _require_deliverable(client, deliverable_name)
    current = _current_entry(db, client.id, name)
    if current.status == DeliverableState.REVISIONS_NEEDED:
        return current
    if current.status != DeliverableState.PENDING_REVIEW:
        raise InvalidTransitionError(f"'{name}' is not awaiting review")
    return set_status(db, client, name, DeliverableState.REVISIONS_NEEDED, actor_id)
