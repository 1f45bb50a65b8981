"""SQLAlchemy ORM models for clients, packages and project review state."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text,
    UniqueConstraint, Uuid, func
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import DEFAULT_DELIVERABLE_STATE, DEFAULT_PAYMENT_STATUS

# text[] on PostgreSQL, JSON elsewhere (SQLite in tests)
StringList = ARRAY(Text).with_variant(JSON(), "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Catalogue
# =============================================================================

class Package(Base):
    """
    A pricing/service tier.

    `deliverables` is the ordered catalogue of work products every client
    on this package must receive; `max_edited_photos` caps the selected
    and final photo stages.
    """
    __tablename__ = "packages"
    __table_args__ = (
        CheckConstraint("max_edited_photos >= 0", name="ck_packages_max_edited_photos"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_edited_photos: Mapped[int] = mapped_column(Integer, nullable=False)
    includes: Mapped[list[str]] = mapped_column(StringList, default=list, nullable=False)
    deliverables: Mapped[list[str]] = mapped_column(StringList, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )


# =============================================================================
# Clients
# =============================================================================

class Client(Base):
    """One photography engagement, owned by a single photographer."""
    __tablename__ = "clients"
    __table_args__ = (
        Index("idx_clients_photographer", "photographer_id"),
        CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid')", name="ck_clients_payment_status"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    photographer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    package_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    event_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_PAYMENT_STATUS.value, nullable=False
    )  # unpaid | partial | paid

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    # Relationships
    package: Mapped["Package | None"] = relationship()


# =============================================================================
# Review State
# =============================================================================

class DeliverableStatus(Base):
    """
    Review state for one (client, deliverable name) pair.

    A missing row means not-started. Rows are only ever written through
    an upsert on the natural key.
    """
    __tablename__ = "deliverable_status"
    __table_args__ = (
        UniqueConstraint("client_id", "deliverable_name", name="uq_deliverable_status_client_name"),
        CheckConstraint(
            "status IN ('not-started', 'pending-review', 'revisions-needed', 'approved')",
            name="ck_deliverable_status_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    deliverable_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default=DEFAULT_DELIVERABLE_STATE.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )


class PhotoComment(Base):
    """
    Client feedback on a single stored photo.

    `photo_path` is bucket-relative ("{client_id}/{file_name}").
    `resolved_at` and `resolved_by` are set together.
    """
    __tablename__ = "photo_comments"
    __table_args__ = (
        Index("idx_photo_comments_client_path", "client_id", "photo_path"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    photo_path: Mapped[str] = mapped_column(String(512), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    commenter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    commenter_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )


class WorkflowToggle(Base):
    """Manually ticked checklist item for a client."""
    __tablename__ = "workflow_toggles"
    __table_args__ = (
        UniqueConstraint("client_id", "item_key", name="uq_workflow_toggles_client_item"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    item_key: Mapped[str] = mapped_column(String(50), nullable=False)
    is_done: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )
