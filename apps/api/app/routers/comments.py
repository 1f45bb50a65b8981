"""Photo comment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.client_access import get_client_for_view
from app.core.config import settings
from app.core.deps import (
    ViewContext,
    get_db,
    get_view_context,
    require_csrf_header,
    require_photographer_view,
)
from app.db.enums import CommentBadge
from app.schemas.comment import (
    CommentCreate,
    CommentRead,
    CommentThread,
    ResolveCommentsRequest,
    ResolveResult,
)
from app.services import comment_service
from app.utils.uploads import read_within_limit, reject_oversized_request

router = APIRouter(prefix="/clients", tags=["comments"])


@router.get("/{client_id}/comments", response_model=CommentThread)
def list_comments(
    client_id: UUID,
    photo_path: str = Query(..., min_length=1, max_length=512),
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """Comments on one photo, oldest first, with the photo's badge."""
    client = get_client_for_view(db, client_id, view)
    comments = comment_service.list_comments(db, client.id, photo_path)
    return CommentThread(
        photo_path=photo_path,
        badge=comment_service.comment_badge(comments),
        comments=comments,
    )


@router.get("/{client_id}/comments/badges", response_model=dict[str, CommentBadge])
def get_comment_badges(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """Badge per commented photo path; photos without comments are omitted."""
    client = get_client_for_view(db, client_id, view)
    return comment_service.badges_for_client(db, client.id)


@router.post("/{client_id}/comments", response_model=CommentRead, status_code=201)
def add_comment(
    client_id: UUID,
    data: CommentCreate,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
    _: None = Depends(require_csrf_header),
):
    """Comment on a photo. Allowed in shared view."""
    client = get_client_for_view(db, client_id, view)
    return comment_service.add_comment(
        db,
        client.id,
        data.photo_path,
        data.comment,
        commenter_name=data.commenter_name,
        commenter_email=data.commenter_email,
    )


@router.post("/{client_id}/comments/resolve", response_model=ResolveResult)
def resolve_comments(
    client_id: UUID,
    data: ResolveCommentsRequest,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """Resolve open comments without replacing the photo. Photographer only."""
    client = get_client_for_view(db, client_id, view)
    count = comment_service.resolve_comments(db, client, data.photo_path, view.actor_id)
    return ResolveResult(photo_path=data.photo_path, resolved_count=count, replaced=False)


@router.post("/{client_id}/comments/resolve-with-replacement", response_model=ResolveResult)
async def resolve_with_replacement(
    client_id: UUID,
    request: Request,
    photo_path: Annotated[str, Form(min_length=1, max_length=512)],
    file: Annotated[UploadFile, File()],
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """
    Replace the photo in place, then resolve its open comments.

    Photographer only. A 502 after the upload means the photo was replaced
    but the comments are still open; retry /comments/resolve.
    """
    reject_oversized_request(request, max_size_bytes=settings.max_upload_size_bytes)
    _, data = await read_within_limit(file, max_size_bytes=settings.max_upload_size_bytes)
    if data is None:
        raise HTTPException(status_code=413, detail="File too large")

    client = await run_in_threadpool(get_client_for_view, db, client_id, view)
    count = await run_in_threadpool(
        comment_service.resolve_with_replacement,
        db,
        client,
        photo_path,
        data,
        view.actor_id,
        file.content_type,
    )
    return ResolveResult(photo_path=photo_path, resolved_count=count, replaced=True)
