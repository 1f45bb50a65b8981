"""Deliverable review endpoints."""

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
from app.db.enums import DeliverableState
from app.schemas.deliverable import DeliverableAction, DeliverableRead, DeliverableSummary
from app.services import deliverable_service

router = APIRouter(prefix="/clients", tags=["deliverables"])


@router.get("/{client_id}/deliverables", response_model=list[DeliverableRead])
def list_deliverables(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """
    Package deliverables with their review state.

    Shared view lists only items waiting for the client's approval.
    """
    client = get_client_for_view(db, client_id, view)
    entries = deliverable_service.list_deliverables(db, client)
    if view.shared:
        entries = [e for e in entries if e.status == DeliverableState.PENDING_REVIEW]
    return entries


@router.get("/{client_id}/deliverables/summary", response_model=DeliverableSummary)
def get_deliverable_summary(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """Submitted and approved deliverables, as shown to the client."""
    client = get_client_for_view(db, client_id, view)
    return deliverable_service.client_review_summary(db, client)


@router.post("/{client_id}/deliverables/submit", response_model=DeliverableRead)
def submit_deliverable(
    client_id: UUID,
    data: DeliverableAction,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    client = get_client_for_view(db, client_id, view)
    return deliverable_service.submit(db, client, data.deliverable_name, actor_id=view.actor_id)


@router.post("/{client_id}/deliverables/approve", response_model=DeliverableRead)
def approve_deliverable(
    client_id: UUID,
    data: DeliverableAction,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
    _: None = Depends(require_csrf_header),
):
    """Approve a deliverable waiting for review. Allowed in shared view."""
    client = get_client_for_view(db, client_id, view)
    return deliverable_service.approve(db, client, data.deliverable_name, actor_id=view.actor_id)


@router.post("/{client_id}/deliverables/request-revisions", response_model=DeliverableRead)
def request_revisions(
    client_id: UUID,
    data: DeliverableAction,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    client = get_client_for_view(db, client_id, view)
    return deliverable_service.request_revisions(
        db, client, data.deliverable_name, actor_id=view.actor_id
    )
