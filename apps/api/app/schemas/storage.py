"""Pydantic schemas for photo folders and stage moves."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.db.enums import PhotoStage


class StoredFileRead(BaseModel):
    name: str
    path: str
    size: int | None = None
    content_type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class FolderRead(BaseModel):
    """Folder overview entry."""

    stage: PhotoStage
    title: str
    description: str
    order: int
    in_pipeline: bool
    file_count: int


class UploadResult(BaseModel):
    uploaded: list[str]


class SignedUrlRead(BaseModel):
    url: str
    expires_in_seconds: int


class MoveRequest(BaseModel):
    """Move selected files one step along the pipeline."""

    source_stage: PhotoStage
    target_stage: PhotoStage
    file_names: list[str] = Field(..., min_length=1)


class MoveResultRead(BaseModel):
    source_stage: PhotoStage
    target_stage: PhotoStage
    moved: list[str]
    warnings: list[str]
    duplicates: list[str]


class RetryDeletesRequest(BaseModel):
    source_stage: PhotoStage
    target_stage: PhotoStage
    file_names: list[str] | None = None


class RetryDeletesResult(BaseModel):
    deleted: list[str]


class StageDuplicatesRead(BaseModel):
    source_stage: PhotoStage
    target_stage: PhotoStage
    file_names: list[str]


class CapacityRead(BaseModel):
    """Quota headroom of a destination stage."""

    target_stage: PhotoStage
    max: int
    current: int
    remaining: int
    selected: int
    can_add_more: bool
