"""Pydantic schemas for photo comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import CommentBadge


class CommentCreate(BaseModel):
    """Request to comment on a photo."""

    photo_path: str = Field(..., min_length=1, max_length=512)
    comment: str = Field(..., max_length=4000)
    commenter_name: str | None = Field(None, max_length=255)
    commenter_email: str | None = Field(None, max_length=255)


class CommentRead(BaseModel):
    """Comment response."""

    id: UUID
    client_id: UUID
    photo_path: str
    comment: str
    commenter_name: str | None
    commenter_email: str | None
    resolved_at: datetime | None
    resolved_by: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CommentThread(BaseModel):
    photo_path: str
    badge: CommentBadge
    comments: list[CommentRead]


class ResolveCommentsRequest(BaseModel):
    photo_path: str = Field(..., min_length=1, max_length=512)


class ResolveResult(BaseModel):
    photo_path: str
    resolved_count: int
    replaced: bool
