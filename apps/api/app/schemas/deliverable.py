"""Pydantic schemas for deliverable review."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.db.enums import DeliverableState


class DeliverableAction(BaseModel):
    """Request naming the deliverable to transition."""

    deliverable_name: str = Field(..., min_length=1, max_length=255)


class DeliverableRead(BaseModel):
    """One package deliverable and its current review state."""

    deliverable_name: str
    status: DeliverableState
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class DeliverableSummary(BaseModel):
    """What the client sees: submitted items only."""

    items: list[DeliverableRead]
    submitted_count: int
    approved_count: int
    total_count: int
