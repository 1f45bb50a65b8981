"""Workflow checklist endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.client_access import get_client_for_view
from app.core.deps import (
    ViewContext,
    get_db,
    get_view_context,
    require_csrf_header,
    require_photographer_view,
)
from app.db.enums import ChecklistItemKey
from app.schemas.workflow import ChecklistItemRead, ChecklistSubItem, ManualToggleUpdate, WorkflowRead
from app.services import workflow_service
from app.services.workflow_service import Checklist

router = APIRouter(prefix="/clients", tags=["workflow"])


def _to_read(checklist: Checklist) -> WorkflowRead:
    return WorkflowRead(
        items=[
            ChecklistItemRead(
                key=item.key,
                title=item.title,
                description=item.description,
                status=item.status,
                manual=item.manual,
                auto_done=item.auto_done,
                manually_done=item.manually_done,
                sub_items=[ChecklistSubItem(name=name, status=state) for name, state in item.sub_items],
            )
            for item in checklist.items
        ],
        completed_count=checklist.completed_count,
        total_count=checklist.total_count,
        progress_percentage=checklist.progress_percentage,
    )


@router.get("/{client_id}/workflow", response_model=WorkflowRead)
def get_workflow(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """Checklist and progress, recalculated from current state."""
    client = get_client_for_view(db, client_id, view)
    return _to_read(workflow_service.get_client_workflow(db, client))


@router.put("/{client_id}/workflow/items/{item_key}", response_model=WorkflowRead)
def set_workflow_item(
    client_id: UUID,
    item_key: ChecklistItemKey,
    data: ManualToggleUpdate,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """Tick or untick a manual checklist item."""
    client = get_client_for_view(db, client_id, view)
    checklist = workflow_service.set_manual_item(
        db, client, item_key, data.done, actor_id=view.actor_id
    )
    return _to_read(checklist)
