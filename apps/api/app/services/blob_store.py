"""
Blob store for client photos.

Four buckets (one per PhotoStage), objects keyed "{client_id}/{file_name}".
Backed by S3 (or an S3-compatible endpoint) in production and by the
local filesystem in development and tests.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.errors import BlobNotFoundError, StoreError, ValidationError
from app.core.stage_definitions import bucket_for
from app.db.enums import PhotoStage
from app.services.storage_client import (
    S3_BACKEND,
    get_local_storage_root,
    get_s3_client,
    get_storage_backend,
)

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class StoredFile:
    """Listing entry for one object in a client's folder."""

    name: str
    path: str
    size: int | None = None
    content_type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def object_key(client_id: UUID, file_name: str) -> str:
    """Bucket-relative path of a client's file."""
    if not file_name or "/" in file_name or file_name in {".", ".."}:
        raise ValidationError(f"Invalid file name: {file_name!r}")
    return f"{client_id}/{file_name}"


def _is_missing(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES


def _local_path(stage: PhotoStage, key: str) -> str:
    return os.path.join(get_local_storage_root(), bucket_for(stage), key)


# =============================================================================
# Listing
# =============================================================================

def list_files(stage: PhotoStage, client_id: UUID) -> list[StoredFile]:
    """All files in a client's folder, sorted by name."""
    prefix = f"{client_id}/"
    files: list[StoredFile] = []

    if get_storage_backend() == S3_BACKEND:
        try:
            paginator = get_s3_client().get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket_for(stage), Prefix=prefix):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(prefix):]
                    if not name or "/" in name:
                        continue
                    files.append(
                        StoredFile(
                            name=name,
                            path=obj["Key"],
                            size=obj.get("Size"),
                            content_type=mimetypes.guess_type(name)[0],
                            updated_at=obj.get("LastModified"),
                        )
                    )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to list {stage.value} files") from exc
    else:
        folder = _local_path(stage, str(client_id))
        if not os.path.isdir(folder):
            return []
        try:
            for entry in os.scandir(folder):
                if not entry.is_file():
                    continue
                stat = entry.stat()
                files.append(
                    StoredFile(
                        name=entry.name,
                        path=f"{prefix}{entry.name}",
                        size=stat.st_size,
                        content_type=mimetypes.guess_type(entry.name)[0],
                        created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
                        updated_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
        except OSError as exc:
            raise StoreError(f"Failed to list {stage.value} files") from exc

    return sorted(files, key=lambda f: f.name)


def list_file_names(stage: PhotoStage, client_id: UUID) -> set[str]:
    return {f.name for f in list_files(stage, client_id)}


def count_files(stage: PhotoStage, client_id: UUID) -> int:
    """Number of objects currently in a client's folder."""
    return len(list_files(stage, client_id))


def exists(stage: PhotoStage, client_id: UUID, file_name: str) -> bool:
    key = object_key(client_id, file_name)
    if get_storage_backend() == S3_BACKEND:
        try:
            get_s3_client().head_object(Bucket=bucket_for(stage), Key=key)
            return True
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise StoreError(f"Failed to check {key} in {stage.value}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to check {key} in {stage.value}") from exc
    return os.path.isfile(_local_path(stage, key))


# =============================================================================
# Object Operations
# =============================================================================

def upload(
    stage: PhotoStage,
    client_id: UUID,
    file_name: str,
    data: bytes,
    content_type: str | None = None,
    *,
    overwrite: bool = False,
) -> str:
    """
    Store bytes at "{client_id}/{file_name}" in the stage's bucket.

    Without `overwrite`, an existing object is a StoreError.
    Returns the object key.
    """
    key = object_key(client_id, file_name)
    if not overwrite and exists(stage, client_id, file_name):
        raise StoreError(f"{key} already exists in {stage.value}")

    content_type = content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"

    if get_storage_backend() == S3_BACKEND:
        try:
            get_s3_client().put_object(
                Bucket=bucket_for(stage),
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to upload {key} to {stage.value}") from exc
    else:
        path = _local_path(stage, key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise StoreError(f"Failed to upload {key} to {stage.value}") from exc

    logger.debug(f"Stored {key} in {stage.value} ({len(data)} bytes)")
    return key


def download(stage: PhotoStage, client_id: UUID, file_name: str) -> bytes:
    """Fetch an object's content; BlobNotFoundError when absent."""
    key = object_key(client_id, file_name)

    if get_storage_backend() == S3_BACKEND:
        try:
            response = get_s3_client().get_object(Bucket=bucket_for(stage), Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if _is_missing(exc):
                raise BlobNotFoundError(f"{key} not found in {stage.value}") from exc
            raise StoreError(f"Failed to download {key} from {stage.value}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to download {key} from {stage.value}") from exc

    path = _local_path(stage, key)
    if not os.path.isfile(path):
        raise BlobNotFoundError(f"{key} not found in {stage.value}")
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise StoreError(f"Failed to download {key} from {stage.value}") from exc


def delete(stage: PhotoStage, client_id: UUID, file_name: str) -> None:
    """Remove an object. Deleting an absent key succeeds."""
    key = object_key(client_id, file_name)

    if get_storage_backend() == S3_BACKEND:
        try:
            get_s3_client().delete_object(Bucket=bucket_for(stage), Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                return
            raise StoreError(f"Failed to delete {key} from {stage.value}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to delete {key} from {stage.value}") from exc
        return

    path = _local_path(stage, key)
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StoreError(f"Failed to delete {key} from {stage.value}") from exc


def signed_url(
    stage: PhotoStage,
    client_id: UUID,
    file_name: str,
    expires_in: int | None = None,
) -> str:
    """Time-limited read URL for an object."""
    key = object_key(client_id, file_name)
    expires_in = expires_in or settings.SIGNED_URL_EXPIRY_SECONDS

    if get_storage_backend() == S3_BACKEND:
        try:
            return get_s3_client().generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket_for(stage), "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to sign URL for {key}") from exc

    if not exists(stage, client_id, file_name):
        raise BlobNotFoundError(f"{key} not found in {stage.value}")
    # Local: plain file path (for dev only)
    return f"file://{_local_path(stage, key)}"
