"""Photo folder endpoints: listing, upload, download and stage moves."""

import mimetypes
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import Response
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
from app.db.enums import PhotoStage
from app.schemas.storage import (
    CapacityRead,
    FolderRead,
    MoveRequest,
    MoveResultRead,
    RetryDeletesRequest,
    RetryDeletesResult,
    SignedUrlRead,
    StageDuplicatesRead,
    StoredFileRead,
    UploadResult,
)
from app.services import blob_store, folder_service, stage_transition_service
from app.services.folder_service import UploadItem
from app.services.selection_service import PhotoSelection
from app.utils.uploads import read_within_limit, reject_oversized_request

router = APIRouter(prefix="/clients", tags=["folders"])


# =============================================================================
# Folders and Files
# =============================================================================

@router.get("/{client_id}/folders", response_model=list[FolderRead])
def list_folders(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """The four folders with file counts."""
    client = get_client_for_view(db, client_id, view)
    return folder_service.get_folder_overview(client.id)


@router.get("/{client_id}/folders/{stage}/files", response_model=list[StoredFileRead])
def list_files(
    client_id: UUID,
    stage: PhotoStage,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    client = get_client_for_view(db, client_id, view)
    return blob_store.list_files(stage, client.id)


@router.post("/{client_id}/folders/{stage}/files", response_model=UploadResult, status_code=201)
async def upload_files(
    client_id: UUID,
    stage: PhotoStage,
    request: Request,
    files: Annotated[list[UploadFile], File()],
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """
    Upload one or more files under generated names.

    Returns 207 with per-file reasons when only some files were stored.
    """
    reject_oversized_request(
        request, max_size_bytes=settings.max_upload_size_bytes, file_count=len(files)
    )

    client = await run_in_threadpool(get_client_for_view, db, client_id, view)

    items: list[UploadItem] = []
    for upload in files:
        size, content = await read_within_limit(
            upload, max_size_bytes=settings.max_upload_size_bytes
        )
        filename = upload.filename or "upload"
        if content is None:
            # Rejected by validation with its declared size
            items.append(UploadItem(filename, upload.content_type, b"", size=size))
        else:
            items.append(UploadItem(filename, upload.content_type, content))

    uploaded = await run_in_threadpool(
        folder_service.upload_files, client.id, stage, items, view.actor_id
    )
    return UploadResult(uploaded=uploaded)


@router.get("/{client_id}/folders/{stage}/files/{file_name}")
def download_file(
    client_id: UUID,
    stage: PhotoStage,
    file_name: str,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    client = get_client_for_view(db, client_id, view)
    data = blob_store.download(stage, client.id, file_name)
    return Response(
        content=data,
        media_type=mimetypes.guess_type(file_name)[0] or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.get("/{client_id}/folders/{stage}/files/{file_name}/url", response_model=SignedUrlRead)
def get_file_url(
    client_id: UUID,
    stage: PhotoStage,
    file_name: str,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(get_view_context),
):
    """Time-limited read URL."""
    client = get_client_for_view(db, client_id, view)
    return SignedUrlRead(
        url=blob_store.signed_url(stage, client.id, file_name),
        expires_in_seconds=settings.SIGNED_URL_EXPIRY_SECONDS,
    )


@router.delete("/{client_id}/folders/{stage}/files/{file_name}", status_code=204)
def delete_file(
    client_id: UUID,
    stage: PhotoStage,
    file_name: str,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    client = get_client_for_view(db, client_id, view)
    folder_service.delete_file(client.id, stage, file_name, view.actor_id)


# =============================================================================
# Stage Moves
# =============================================================================

@router.get("/{client_id}/selection-capacity", response_model=CapacityRead)
def get_selection_capacity(
    client_id: UUID,
    target_stage: PhotoStage = Query(...),
    file_names: list[str] = Query([], description="Photos already picked"),
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
):
    """
    Quota headroom for a pending selection.

    409 when the picked photos alone no longer fit the destination.
    """
    client = get_client_for_view(db, client_id, view)
    capacity = stage_transition_service.check_capacity(client, target_stage)
    selection = PhotoSelection(capacity=capacity)
    for name in file_names:
        selection.add(name)
    return CapacityRead(
        target_stage=target_stage,
        max=capacity.max_allowed,
        current=capacity.current,
        remaining=capacity.remaining,
        selected=len(selection),
        can_add_more=selection.can_add(),
    )


@router.post("/{client_id}/moves", response_model=MoveResultRead)
def move_selection(
    client_id: UUID,
    data: MoveRequest,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """
    Move selected photos to the next stage.

    409 when the destination quota would be exceeded (nothing moves);
    207 when some files failed.
    """
    client = get_client_for_view(db, client_id, view)
    result = stage_transition_service.move_selection(
        client, data.source_stage, data.target_stage, data.file_names, actor_id=view.actor_id
    )
    return MoveResultRead(
        source_stage=result.source_stage,
        target_stage=result.target_stage,
        moved=result.moved,
        warnings=result.warnings,
        duplicates=result.duplicates,
    )


@router.post("/{client_id}/moves/retry-deletes", response_model=RetryDeletesResult)
def retry_source_deletes(
    client_id: UUID,
    data: RetryDeletesRequest,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
    _: None = Depends(require_csrf_header),
):
    """Remove source copies of photos that already reached the destination."""
    client = get_client_for_view(db, client_id, view)
    deleted = stage_transition_service.retry_source_deletes(
        client.id, data.source_stage, data.target_stage, data.file_names, actor_id=view.actor_id
    )
    return RetryDeletesResult(deleted=deleted)


@router.get("/{client_id}/stages/duplicates", response_model=list[StageDuplicatesRead])
def list_stage_duplicates(
    client_id: UUID,
    db: Session = Depends(get_db),
    view: ViewContext = Depends(require_photographer_view),
):
    client = get_client_for_view(db, client_id, view)
    return [
        StageDuplicatesRead(source_stage=source, target_stage=target, file_names=names)
        for source, target, names in stage_transition_service.find_stage_duplicates(client.id)
    ]
