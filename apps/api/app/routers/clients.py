"""Client endpoints: CRUD, search and the schedule board."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.client_access import get_client_for_view
from app.core.deps import (
    ViewContext,
    get_current_session,
    get_db,
    get_view_context,
    require_csrf_header,
    require_photographer_view,
)
from app.db.enums import ClientCategory
from app.schemas.auth import UserSession
from app.schemas.client import ClientBoard, ClientCreate, ClientDetail, ClientRead, ClientUpdate
from app.services import client_service

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientRead])
def list_clients(
    q: str | None = Query(None, max_length=255, description="Search name or contact"),
    payment_status: str | None = Query(None, description="all | unpaid | partial | paid"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """List the photographer's clients, newest first."""
    return client_service.list_clients(db, session.user_id, q=q, payment_status=payment_status)


@router.get("/board", response_model=ClientBoard)
def get_client_board(
    today: date | None = Query(None, description="Reference date, defaults to today"),
    q: str | None = Query(None, max_length=255),
    payment_status: str | None = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Clients grouped into upcoming, in progress and completed."""
    clients = client_service.list_clients(db, session.user_id, q=q, payment_status=payment_status)
    board = client_service.categorize_clients(clients, today or date.today())
    return ClientBoard(
        upcoming=board[ClientCategory.UPCOMING],
        in_progress=board[ClientCategory.IN_PROGRESS],
        completed=board[ClientCategory.COMPLETED],
        counts={category: len(items) for category, items in board.items()},
    )


@router.post("", response_model=ClientRead, status_code=201)
def create_client(
    data: ClientCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    _: None = Depends(require_csrf_header),
):
    return client_service.create_client(db, session.user_id, data)


@router.get("/{client_id}", response_model=ClientDetail)
def get_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """Client with its package. Readable by id in shared view."""
    return get_client_for_view(db, client_id, view)


@router.patch("/{client_id}", response_model=ClientRead)
def update_client(
    client_id: UUID,
    data: ClientUpdate,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    client = get_client_for_view(db, client_id, view)
    return client_service.update_client(db, client, data)


@router.delete("/{client_id}", status_code=204)
def delete_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """Delete a client and its review state; stored photos are kept."""
    client = get_client_for_view(db, client_id, view)
    client_service.delete_client(db, client)
