"""Tests for the blob store (local backend and S3 calls)."""

import uuid
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from app.core.config import settings
from app.core.errors import BlobNotFoundError, StoreError, ValidationError
from app.db.enums import PhotoStage
from app.services import blob_store

STAGE = PhotoStage.SELECTED_PHOTOS


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def client_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def s3(monkeypatch) -> MagicMock:
    fake = MagicMock()
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "s3", raising=False)
    monkeypatch.setattr(blob_store, "get_s3_client", lambda: fake)
    return fake


# =============================================================================
# Keys
# =============================================================================

def test_object_key_is_client_scoped(client_id):
    assert blob_store.object_key(client_id, "a.jpg") == f"{client_id}/a.jpg"


@pytest.mark.parametrize("name", ["", ".", "..", "nested/a.jpg"])
def test_object_key_rejects_unsafe_names(client_id, name):
    with pytest.raises(ValidationError):
        blob_store.object_key(client_id, name)


# =============================================================================
# Local Backend
# =============================================================================

def test_local_upload_list_download_delete(client_id):
    key = blob_store.upload(STAGE, client_id, "b.jpg", b"bbb", "image/jpeg")
    blob_store.upload(STAGE, client_id, "a.png", b"a", "image/png")

    assert key == f"{client_id}/b.jpg"
    files = blob_store.list_files(STAGE, client_id)
    assert [f.name for f in files] == ["a.png", "b.jpg"]
    assert files[1].path == key
    assert files[1].size == 3
    assert files[1].content_type == "image/jpeg"
    assert blob_store.download(STAGE, client_id, "b.jpg") == b"bbb"

    blob_store.delete(STAGE, client_id, "b.jpg")
    blob_store.delete(STAGE, client_id, "b.jpg")
    assert blob_store.count_files(STAGE, client_id) == 1


def test_local_folders_are_separate_per_stage_and_client(client_id):
    blob_store.upload(STAGE, client_id, "a.jpg", b"a")

    assert blob_store.count_files(PhotoStage.FINAL_PHOTOS, client_id) == 0
    assert blob_store.count_files(STAGE, uuid.uuid4()) == 0


def test_upload_refuses_existing_without_overwrite(client_id):
    blob_store.upload(STAGE, client_id, "a.jpg", b"first")

    with pytest.raises(StoreError):
        blob_store.upload(STAGE, client_id, "a.jpg", b"second")

    blob_store.upload(STAGE, client_id, "a.jpg", b"second", overwrite=True)
    assert blob_store.download(STAGE, client_id, "a.jpg") == b"second"


def test_local_download_missing(client_id):
    with pytest.raises(BlobNotFoundError):
        blob_store.download(STAGE, client_id, "missing.jpg")


def test_local_signed_url(client_id):
    with pytest.raises(BlobNotFoundError):
        blob_store.signed_url(STAGE, client_id, "a.jpg")

    blob_store.upload(STAGE, client_id, "a.jpg", b"a")
    url = blob_store.signed_url(STAGE, client_id, "a.jpg")

    assert url.startswith("file://")
    assert url.endswith(f"{settings.BUCKET_SELECTED_PHOTOS}/{client_id}/a.jpg")


# =============================================================================
# S3 Backend
# =============================================================================

def test_s3_list_skips_nested_keys(s3, client_id):
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {"Contents": [
            {"Key": f"{client_id}/z.jpg", "Size": 10},
            {"Key": f"{client_id}/nested/x.jpg", "Size": 1},
        ]},
        {"Contents": [{"Key": f"{client_id}/a.jpg", "Size": 5}]},
        {},
    ]
    s3.get_paginator.return_value = paginator

    files = blob_store.list_files(STAGE, client_id)

    assert [f.name for f in files] == ["a.jpg", "z.jpg"]
    paginator.paginate.assert_called_once_with(
        Bucket=settings.BUCKET_SELECTED_PHOTOS, Prefix=f"{client_id}/"
    )


def test_s3_upload_checks_existence_first(s3, client_id):
    s3.head_object.side_effect = _client_error("404", "HeadObject")

    key = blob_store.upload(STAGE, client_id, "a.jpg", b"data")

    s3.put_object.assert_called_once_with(
        Bucket=settings.BUCKET_SELECTED_PHOTOS,
        Key=key,
        Body=b"data",
        ContentType="image/jpeg",
    )


def test_s3_upload_existing_object_rejected(s3, client_id):
    s3.head_object.return_value = {}

    with pytest.raises(StoreError):
        blob_store.upload(STAGE, client_id, "a.jpg", b"data")

    s3.put_object.assert_not_called()


def test_s3_overwrite_skips_existence_check(s3, client_id):
    blob_store.upload(STAGE, client_id, "a.jpg", b"data", overwrite=True)

    s3.head_object.assert_not_called()
    s3.put_object.assert_called_once()


def test_s3_download_missing_key(s3, client_id):
    s3.get_object.side_effect = _client_error("NoSuchKey")

    with pytest.raises(BlobNotFoundError):
        blob_store.download(STAGE, client_id, "a.jpg")


def test_s3_errors_become_store_errors(s3, client_id):
    s3.get_object.side_effect = _client_error("AccessDenied")
    s3.delete_object.side_effect = _client_error("AccessDenied", "DeleteObject")

    with pytest.raises(StoreError) as exc_info:
        blob_store.download(STAGE, client_id, "a.jpg")
    assert not isinstance(exc_info.value, BlobNotFoundError)

    with pytest.raises(StoreError):
        blob_store.delete(STAGE, client_id, "a.jpg")


def test_s3_signed_url(s3, client_id):
    s3.generate_presigned_url.return_value = "https://signed.example/a.jpg"

    url = blob_store.signed_url(STAGE, client_id, "a.jpg", expires_in=60)

    assert url == "https://signed.example/a.jpg"
    s3.generate_presigned_url.assert_called_once_with(
        "get_object",
        Params={"Bucket": settings.BUCKET_SELECTED_PHOTOS, "Key": f"{client_id}/a.jpg"},
        ExpiresIn=60,
    )
