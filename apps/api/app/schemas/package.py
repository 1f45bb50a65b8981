"""Pydantic schemas for packages."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class PackageRead(BaseModel):
    """Package response."""

    id: UUID
    name: str
    price: Decimal
    max_edited_photos: int
    includes: list[str]
    deliverables: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
