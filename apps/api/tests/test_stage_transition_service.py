"""Tests for moving photos between pipeline stages."""

import uuid

import pytest

from app.core.errors import (
    InvalidTransitionError,
    PartialBatchFailure,
    QuotaExceededError,
    QuotaUndefinedError,
    StoreError,
    ValidationError,
)
from app.db.enums import PhotoStage
from app.db.models import Client
from app.services import blob_store, stage_transition_service

ALL = PhotoStage.ALL_PHOTOS
SELECTED = PhotoStage.SELECTED_PHOTOS
FINAL = PhotoStage.FINAL_PHOTOS


def test_move_fills_quota_exactly(put_photos, wedding_client):
    put_photos(wedding_client.id, SELECTED, 85, prefix="chosen")
    candidates = put_photos(wedding_client.id, ALL, 15, prefix="raw")

    result = stage_transition_service.move_selection(wedding_client, ALL, SELECTED, candidates)

    assert sorted(result.moved) == sorted(candidates)
    assert result.duplicates == []
    assert blob_store.count_files(SELECTED, wedding_client.id) == 100
    assert blob_store.count_files(ALL, wedding_client.id) == 0


def test_move_over_quota_rejected_without_moving(put_photos, wedding_client):
    put_photos(wedding_client.id, SELECTED, 85, prefix="chosen")
    candidates = put_photos(wedding_client.id, ALL, 16, prefix="raw")

    with pytest.raises(QuotaExceededError) as exc_info:
        stage_transition_service.move_selection(wedding_client, ALL, SELECTED, candidates)

    error = exc_info.value
    assert (error.max_allowed, error.current, error.requested) == (100, 85, 16)
    assert error.status_code == 409
    assert blob_store.count_files(SELECTED, wedding_client.id) == 85
    assert blob_store.count_files(ALL, wedding_client.id) == 16


def test_move_preserves_content_and_path(small_client):
    blob_store.upload(ALL, small_client.id, "ring.jpg", b"ring-bytes", "image/jpeg")

    stage_transition_service.move_selection(small_client, ALL, SELECTED, ["ring.jpg"])

    assert blob_store.download(SELECTED, small_client.id, "ring.jpg") == b"ring-bytes"
    assert not blob_store.exists(ALL, small_client.id, "ring.jpg")


def test_selected_to_final(put_photos, small_client):
    names = put_photos(small_client.id, SELECTED, 3)

    result = stage_transition_service.move_selection(small_client, SELECTED, FINAL, names[:2])

    assert sorted(result.moved) == names[:2]
    assert blob_store.list_file_names(FINAL, small_client.id) == set(names[:2])
    assert blob_store.list_file_names(SELECTED, small_client.id) == {names[2]}


@pytest.mark.parametrize(
    "source,target",
    [
        (ALL, FINAL),
        (SELECTED, ALL),
        (FINAL, SELECTED),
        (PhotoStage.REFERENCES, ALL),
        (ALL, PhotoStage.REFERENCES),
    ],
)
def test_non_adjacent_moves_rejected(small_client, source, target):
    with pytest.raises(InvalidTransitionError):
        stage_transition_service.move_selection(small_client, source, target, ["a.jpg"])


def test_empty_selection_rejected(small_client):
    with pytest.raises(ValidationError):
        stage_transition_service.move_selection(small_client, ALL, SELECTED, [])


def test_client_without_package_has_no_quota(put_photos, db, photographer_id):
    client = Client(photographer_id=photographer_id, name="No Package")
    db.add(client)
    db.commit()
    put_photos(client.id, ALL, 1)

    with pytest.raises(QuotaUndefinedError):
        stage_transition_service.move_selection(client, ALL, SELECTED, ["photo-000.jpg"])


def test_missing_source_file_reported_as_partial_failure(put_photos, small_client):
    put_photos(small_client.id, ALL, 2)

    with pytest.raises(PartialBatchFailure) as exc_info:
        stage_transition_service.move_selection(
            small_client, ALL, SELECTED, ["photo-000.jpg", "photo-001.jpg", "ghost.jpg"]
        )

    failure = exc_info.value
    assert sorted(failure.succeeded) == ["photo-000.jpg", "photo-001.jpg"]
    assert list(failure.failed) == ["ghost.jpg"]
    assert failure.status_code == 207
    assert blob_store.count_files(SELECTED, small_client.id) == 2


def test_all_files_failing_is_502(small_client):
    with pytest.raises(PartialBatchFailure) as exc_info:
        stage_transition_service.move_selection(small_client, ALL, SELECTED, ["ghost.jpg"])

    assert exc_info.value.succeeded == []
    assert exc_info.value.status_code == 502


def test_failed_source_delete_leaves_duplicate_with_warning(put_photos, small_client, monkeypatch):
    names = put_photos(small_client.id, ALL, 2)
    real_delete = blob_store.delete

    def flaky_delete(stage, client_id, file_name):
        if file_name == names[0]:
            raise StoreError("delete failed")
        return real_delete(stage, client_id, file_name)

    monkeypatch.setattr(blob_store, "delete", flaky_delete)

    result = stage_transition_service.move_selection(small_client, ALL, SELECTED, names)

    assert sorted(result.moved) == names
    assert result.duplicates == [names[0]]
    assert len(result.warnings) == 1
    assert names[0] in result.warnings[0]
    assert blob_store.exists(ALL, small_client.id, names[0])
    assert blob_store.exists(SELECTED, small_client.id, names[0])


def test_rerun_after_failed_delete_fits_full_quota(put_photos, small_client, monkeypatch):
    put_photos(small_client.id, SELECTED, 4, prefix="chosen")
    blob_store.upload(ALL, small_client.id, "x.jpg", b"x", "image/jpeg")
    real_delete = blob_store.delete

    def failing_delete(stage, client_id, file_name):
        raise StoreError("delete failed")

    monkeypatch.setattr(blob_store, "delete", failing_delete)
    first = stage_transition_service.move_selection(small_client, ALL, SELECTED, ["x.jpg"])
    assert first.duplicates == ["x.jpg"]
    assert blob_store.count_files(SELECTED, small_client.id) == 5

    monkeypatch.setattr(blob_store, "delete", real_delete)
    second = stage_transition_service.move_selection(small_client, ALL, SELECTED, ["x.jpg"])

    assert second.moved == ["x.jpg"]
    assert second.duplicates == []
    assert not blob_store.exists(ALL, small_client.id, "x.jpg")
    assert blob_store.count_files(SELECTED, small_client.id) == 5


def test_duplicates_found_and_retry_delete_is_idempotent(small_client):
    blob_store.upload(ALL, small_client.id, "dup.jpg", b"x", "image/jpeg")
    blob_store.upload(SELECTED, small_client.id, "dup.jpg", b"x", "image/jpeg")
    blob_store.upload(ALL, small_client.id, "only-source.jpg", b"y", "image/jpeg")

    duplicates = stage_transition_service.find_stage_duplicates(small_client.id)
    assert duplicates == [(ALL, SELECTED, ["dup.jpg"]), (SELECTED, FINAL, [])]

    deleted = stage_transition_service.retry_source_deletes(small_client.id, ALL, SELECTED)
    assert deleted == ["dup.jpg"]
    assert blob_store.exists(SELECTED, small_client.id, "dup.jpg")
    assert blob_store.exists(ALL, small_client.id, "only-source.jpg")

    assert stage_transition_service.retry_source_deletes(small_client.id, ALL, SELECTED) == []


def test_retry_delete_never_removes_last_copy(small_client):
    blob_store.upload(ALL, small_client.id, "solo.jpg", b"z", "image/jpeg")

    deleted = stage_transition_service.retry_source_deletes(
        small_client.id, ALL, SELECTED, file_names=["solo.jpg"]
    )

    assert deleted == []
    assert blob_store.exists(ALL, small_client.id, "solo.jpg")


def test_check_capacity_reports_headroom(put_photos, small_client):
    put_photos(small_client.id, SELECTED, 3)

    capacity = stage_transition_service.check_capacity(small_client, SELECTED)

    assert capacity.max_allowed == 5
    assert capacity.current == 3
    assert capacity.remaining == 2
    assert capacity.fits(2)
    assert not capacity.fits(3)


def test_all_photos_is_not_a_destination(small_client):
    with pytest.raises(InvalidTransitionError):
        stage_transition_service.check_capacity(small_client, ALL)


def test_clients_do_not_share_folders(put_photos, small_client, db, photographer_id, small_package):
    other = Client(photographer_id=uuid.uuid4(), package_id=small_package.id, name="Other")
    db.add(other)
    db.commit()
    put_photos(other.id, SELECTED, 5)

    capacity = stage_transition_service.check_capacity(small_client, SELECTED)

    assert capacity.current == 0
