"""Client CRUD, search and schedule categorisation."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import NotFoundError, ValidationError
from app.core.structured_logging import build_log_context
from app.db.enums import ChangeTable, ClientCategory, PaymentStatus
from app.db.models import Client, DeliverableStatus, Package, PhotoComment, WorkflowToggle
from app.db.session import commit_or_raise
from app.schemas.client import ClientCreate, ClientUpdate
from app.services.change_feed import feed

logger = logging.getLogger(__name__)

_OPTIONAL_TEXT_FIELDS = ("contact", "location", "description", "event_type")


def _clean_optional(value: str | None) -> str | None:
    """Empty strings are stored as null."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Client name is required")
    return name


def _ensure_package(db: Session, package_id: UUID | None) -> None:
    if package_id and not db.get(Package, package_id):
        raise NotFoundError("Package not found")


# =============================================================================
# Reads
# =============================================================================

def get_client(db: Session, client_id: UUID) -> Client:
    """Client by id with its package loaded; NotFoundError when missing."""
    client = db.execute(
        select(Client).options(joinedload(Client.package)).where(Client.id == client_id)
    ).scalar_one_or_none()
    if not client:
        raise NotFoundError("Client not found")
    return client


def get_owned_client(db: Session, client_id: UUID, photographer_id: UUID) -> Client:
    """Client owned by the photographer; other photographers' clients look missing."""
    client = get_client(db, client_id)
    if client.photographer_id != photographer_id:
        raise NotFoundError("Client not found")
    return client


def list_clients(
    db: Session,
    photographer_id: UUID,
    q: str | None = None,
    payment_status: str | None = None,
) -> list[Client]:
    """
    Clients of a photographer, newest first.

    `q` matches name or contact, case-insensitively. `payment_status`
    of None or "all" disables that filter.
    """
    query = select(Client).where(Client.photographer_id == photographer_id)

    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Client.name).like(pattern),
                func.lower(Client.contact).like(pattern),
            )
        )

    if payment_status and payment_status != "all":
        if not PaymentStatus.has_value(payment_status):
            raise ValidationError(f"Unknown payment status: {payment_status}")
        query = query.where(Client.payment_status == payment_status)

    query = query.order_by(Client.created_at.desc())
    return list(db.execute(query).scalars().all())


def categorize_client(client: Client, today: date) -> ClientCategory:
    """Schedule bucket of a client relative to `today`."""
    if client.event_date is None or client.event_date > today:
        return ClientCategory.UPCOMING
    if client.event_date == today:
        return ClientCategory.IN_PROGRESS
    if client.due_date is not None and client.due_date >= today:
        return ClientCategory.IN_PROGRESS
    return ClientCategory.COMPLETED


def categorize_clients(clients: list[Client], today: date) -> dict[ClientCategory, list[Client]]:
    board: dict[ClientCategory, list[Client]] = {category: [] for category in ClientCategory}
    for client in clients:
        board[categorize_client(client, today)].append(client)
    return board


# =============================================================================
# Writes
# =============================================================================

def create_client(db: Session, photographer_id: UUID, data: ClientCreate) -> Client:
    """Create a client owned by the acting photographer."""
    _ensure_package(db, data.package_id)
    client = Client(
        photographer_id=photographer_id,
        package_id=data.package_id,
        name=_require_name(data.name),
        event_date=data.event_date,
        due_date=data.due_date,
        payment_status=data.payment_status.value,
        **{field: _clean_optional(getattr(data, field)) for field in _OPTIONAL_TEXT_FIELDS},
    )
    db.add(client)
    commit_or_raise(db, "create client")
    db.refresh(client)

    logger.info(
        "Client created",
        extra=build_log_context(user_id=photographer_id, client_id=client.id),
    )
    return client


def update_client(db: Session, client: Client, data: ClientUpdate) -> Client:
    """Apply the fields present in `data`."""
    changes = data.model_dump(exclude_unset=True)

    if "name" in changes:
        client.name = _require_name(changes.pop("name"))
    if "package_id" in changes:
        _ensure_package(db, changes["package_id"])
        client.package_id = changes.pop("package_id")
    if "payment_status" in changes:
        status = changes.pop("payment_status")
        if status is None:
            raise ValidationError("Payment status cannot be empty")
        client.payment_status = status.value if isinstance(status, PaymentStatus) else status

    for field, value in changes.items():
        if field in _OPTIONAL_TEXT_FIELDS:
            value = _clean_optional(value)
        setattr(client, field, value)

    commit_or_raise(db, "update client")
    db.refresh(client)
    return client


def delete_client(db: Session, client: Client) -> None:
    """
    Delete a client and its review state.

    Stored photos are left in the buckets.
    """
    client_id = client.id
    photographer_id = client.photographer_id
    db.execute(delete(DeliverableStatus).where(DeliverableStatus.client_id == client_id))
    db.execute(delete(WorkflowToggle).where(WorkflowToggle.client_id == client_id))
    db.execute(delete(PhotoComment).where(PhotoComment.client_id == client_id))
    db.delete(client)
    commit_or_raise(db, "delete client")
    for table in ChangeTable:
        feed.publish(table, client_id, event="DELETE")

    logger.info(
        "Client deleted",
        extra=build_log_context(user_id=photographer_id, client_id=client_id),
    )
