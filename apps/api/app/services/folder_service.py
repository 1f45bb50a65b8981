"""Folder operations: overview, validated multi-file upload, file access."""

from __future__ import annotations

import logging
import mimetypes
import secrets
import string
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from uuid import UUID

from app.core.config import settings
from app.core.errors import PartialBatchFailure, StoreError, ValidationError
from app.core.stage_definitions import get_folder_defs
from app.core.structured_logging import build_log_context
from app.db.enums import PhotoStage
from app.services import blob_store

logger = logging.getLogger(__name__)

ALLOWED_MIME_PREFIXES = ("image/", "video/")
ALLOWED_MIME_TYPES = {"application/pdf"}

_NAME_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class UploadItem:
    """One file of a multi-file upload, already read into memory."""

    filename: str
    content_type: str | None
    data: bytes
    # Declared size when the body was not read (oversized uploads)
    size: int | None = None


# =============================================================================
# Validation and Naming
# =============================================================================

def validate_file(filename: str, content_type: str | None, file_size: int) -> tuple[bool, str | None]:
    """
    Validate file type and size.

    Returns (is_valid, error_message)
    """
    content_type = (content_type or "").lower()
    if not (content_type.startswith(ALLOWED_MIME_PREFIXES) or content_type in ALLOWED_MIME_TYPES):
        return False, f"Content type '{content_type or 'unknown'}' not allowed"

    if file_size <= 0:
        return False, "File is empty"

    if file_size > settings.max_upload_size_bytes:
        return False, f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB} MB limit"

    return True, None


def _extension_for(filename: str, content_type: str | None) -> str:
    if "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower()
        if ext and ext.isalnum():
            return ext
    guessed = mimetypes.guess_extension(content_type or "") or ".bin"
    return guessed.lstrip(".")


def generate_file_name(filename: str, content_type: str | None = None) -> str:
    """Storage name "{epoch_millis}-{random}.{ext}" keeping the original extension."""
    token = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}-{token}.{_extension_for(filename, content_type)}"


# =============================================================================
# Folder Operations
# =============================================================================

def get_folder_overview(client_id: UUID) -> list[dict[str, object]]:
    """Folder definitions with the client's file count per stage."""
    overview = []
    for folder in get_folder_defs():
        entry = dict(folder)
        entry["file_count"] = blob_store.count_files(folder["stage"], client_id)
        overview.append(entry)
    return overview


def upload_files(
    client_id: UUID,
    stage: PhotoStage,
    items: list[UploadItem],
    actor_id: UUID | None = None,
) -> list[str]:
    """
    Validate and store files under generated names, in parallel.

    Returns stored names. Raises PartialBatchFailure when any file was
    rejected or failed; files already stored stay in place.
    """
    if not items:
        raise ValidationError("No files to upload")

    failed: dict[str, str] = {}
    accepted: list[tuple[UploadItem, str]] = []
    for item in items:
        is_valid, error = validate_file(
            item.filename, item.content_type, item.size if item.size is not None else len(item.data)
        )
        if not is_valid:
            failed[item.filename] = error or "Invalid file"
            continue
        accepted.append((item, generate_file_name(item.filename, item.content_type)))

    def _store(pair: tuple[UploadItem, str]) -> tuple[str, str | None]:
        item, name = pair
        try:
            blob_store.upload(stage, client_id, name, item.data, item.content_type)
            return name, None
        except StoreError as exc:
            return name, exc.message

    uploaded: list[str] = []
    if accepted:
        with ThreadPoolExecutor(max_workers=max(1, settings.BLOB_MAX_CONCURRENCY)) as executor:
            results = list(executor.map(_store, accepted))
        for (item, _), (name, error) in zip(accepted, results):
            if error:
                failed[item.filename] = error
            else:
                uploaded.append(name)

    log_context = build_log_context(user_id=actor_id, client_id=client_id, stage=stage.value)
    if failed:
        logger.warning(
            f"Upload to {stage.value}: {len(uploaded)} stored, {len(failed)} failed",
            extra=log_context,
        )
        raise PartialBatchFailure("upload", uploaded, failed)

    logger.info(f"Uploaded {len(uploaded)} files to {stage.value}", extra=log_context)
    return uploaded


def delete_file(client_id: UUID, stage: PhotoStage, file_name: str, actor_id: UUID | None = None) -> None:
    blob_store.delete(stage, client_id, file_name)
    logger.info(
        f"Deleted file from {stage.value}",
        extra=build_log_context(user_id=actor_id, client_id=client_id, stage=stage.value),
    )
