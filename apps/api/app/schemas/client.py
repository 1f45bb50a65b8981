"""Pydantic schemas for clients."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import ClientCategory, PaymentStatus
from app.schemas.package import PackageRead


class ClientCreate(BaseModel):
    """Request to create a client."""

    name: str = Field(..., max_length=255)
    contact: str | None = Field(None, max_length=255)
    location: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=4000)
    event_type: str | None = Field(None, max_length=50)
    event_date: date | None = None
    due_date: date | None = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    package_id: UUID | None = None


class ClientUpdate(BaseModel):
    """Partial update; only fields present in the request are written."""

    name: str | None = Field(None, max_length=255)
    contact: str | None = Field(None, max_length=255)
    location: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=4000)
    event_type: str | None = Field(None, max_length=50)
    event_date: date | None = None
    due_date: date | None = None
    payment_status: PaymentStatus | None = None
    package_id: UUID | None = None


class ClientRead(BaseModel):
    """Client response."""

    id: UUID
    photographer_id: UUID
    package_id: UUID | None
    name: str
    contact: str | None
    location: str | None
    description: str | None
    event_type: str | None
    event_date: date | None
    due_date: date | None
    payment_status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientDetail(ClientRead):
    """Client with its package expanded."""

    package: PackageRead | None = None


class ClientBoard(BaseModel):
    """Clients grouped by schedule category."""

    upcoming: list[ClientRead]
    in_progress: list[ClientRead]
    completed: list[ClientRead]
    counts: dict[ClientCategory, int]
