"""Pydantic schemas for the workflow checklist."""

from pydantic import BaseModel

from app.db.enums import ChecklistItemKey, ChecklistStatus, DeliverableState


class ChecklistSubItem(BaseModel):
    name: str
    status: DeliverableState


class ChecklistItemRead(BaseModel):
    key: ChecklistItemKey
    title: str
    description: str
    status: ChecklistStatus
    manual: bool
    auto_done: bool
    manually_done: bool
    sub_items: list[ChecklistSubItem] = []


class WorkflowRead(BaseModel):
    items: list[ChecklistItemRead]
    completed_count: int
    total_count: int
    progress_percentage: float


class ManualToggleUpdate(BaseModel):
    done: bool
