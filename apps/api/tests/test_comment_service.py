"""Tests for photo comments and their resolution."""

import uuid

import pytest
from sqlalchemy import func, select

from app.core.errors import PermissionDeniedError, StoreError, ValidationError
from app.db.enums import ChangeTable, CommentBadge, PhotoStage
from app.db.models import PhotoComment
from app.services import blob_store, comment_service
from app.services.change_feed import feed


def _photo(client, name="IMG_0001.jpg", data=b"original"):
    blob_store.upload(PhotoStage.ALL_PHOTOS, client.id, name, data, "image/jpeg")
    return f"{client.id}/{name}"


def _comment_count(db):
    return db.execute(select(func.count()).select_from(PhotoComment)).scalar_one()


def test_add_comment_stores_unresolved(db, small_client):
    path = _photo(small_client)

    comment = comment_service.add_comment(
        db, small_client.id, path, "  Please brighten the sky  ", "Jordan", "jordan@example.com"
    )

    assert comment.comment == "Please brighten the sky"
    assert comment.commenter_name == "Jordan"
    assert comment.resolved_at is None
    assert comment.resolved_by is None


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_comment_rejected_without_row(db, small_client, text):
    path = _photo(small_client)

    with pytest.raises(ValidationError):
        comment_service.add_comment(db, small_client.id, path, text)

    assert _comment_count(db) == 0


def test_markup_stripped_from_comment(db, small_client):
    path = _photo(small_client)

    comment = comment_service.add_comment(db, small_client.id, path, "<b>crop</b> tighter")

    assert comment.comment == "crop tighter"


def test_photo_path_must_belong_to_client(db, small_client):
    with pytest.raises(ValidationError):
        comment_service.add_comment(db, small_client.id, f"{uuid.uuid4()}/x.jpg", "hi")


def test_comments_listed_oldest_first(db, small_client):
    path = _photo(small_client)
    for text in ("first", "second", "third"):
        comment_service.add_comment(db, small_client.id, path, text)

    comments = comment_service.list_comments(db, small_client.id, path)

    assert [c.comment for c in comments] == ["first", "second", "third"]


def test_badge_reflects_resolution(db, small_client, photographer_id):
    path = _photo(small_client)
    assert comment_service.comment_badge([]) == CommentBadge.NONE

    comment_service.add_comment(db, small_client.id, path, "warmer tones")
    comments = comment_service.list_comments(db, small_client.id, path)
    assert comment_service.comment_badge(comments) == CommentBadge.HAS_COMMENTS

    comment_service.resolve_comments(db, small_client, path, photographer_id)
    comments = comment_service.list_comments(db, small_client.id, path)
    assert comment_service.comment_badge(comments) == CommentBadge.RESOLVED


def test_badges_for_client(db, small_client, photographer_id):
    open_path = _photo(small_client, "open.jpg")
    done_path = _photo(small_client, "done.jpg")
    comment_service.add_comment(db, small_client.id, open_path, "fix")
    comment_service.add_comment(db, small_client.id, done_path, "fix")
    comment_service.resolve_comments(db, small_client, done_path, photographer_id)

    badges = comment_service.badges_for_client(db, small_client.id)

    assert badges == {
        open_path: CommentBadge.HAS_COMMENTS,
        done_path: CommentBadge.RESOLVED,
    }


def test_resolve_with_replacement_resolves_all_and_replaces_bytes(db, small_client, photographer_id):
    path = _photo(small_client)
    comment_service.add_comment(db, small_client.id, path, "old one")
    comment_service.resolve_comments(db, small_client, path, photographer_id)
    for text in ("too dark", "crop left", "remove sign"):
        comment_service.add_comment(db, small_client.id, path, text)

    resolved = comment_service.resolve_with_replacement(
        db, small_client, path, b"edited", photographer_id, "image/jpeg"
    )

    assert resolved == 3
    comments = comment_service.list_comments(db, small_client.id, path)
    assert len(comments) == 4
    assert all(c.resolved_at is not None for c in comments)
    assert all(c.resolved_by == photographer_id for c in comments)
    assert blob_store.download(PhotoStage.ALL_PHOTOS, small_client.id, "IMG_0001.jpg") == b"edited"


def test_non_photographer_cannot_resolve(db, small_client):
    path = _photo(small_client)
    comment_service.add_comment(db, small_client.id, path, "too dark")

    with pytest.raises(PermissionDeniedError):
        comment_service.resolve_with_replacement(db, small_client, path, b"edited", uuid.uuid4())

    with pytest.raises(PermissionDeniedError):
        comment_service.resolve_comments(db, small_client, path, None)

    comments = comment_service.list_comments(db, small_client.id, path)
    assert comments[0].resolved_at is None
    assert blob_store.download(PhotoStage.ALL_PHOTOS, small_client.id, "IMG_0001.jpg") == b"original"


def test_failed_upload_leaves_comments_open(db, small_client, photographer_id, monkeypatch):
    path = _photo(small_client)
    comment_service.add_comment(db, small_client.id, path, "too dark")

    def failing_upload(*args, **kwargs):
        raise StoreError("bucket unavailable")

    monkeypatch.setattr(blob_store, "upload", failing_upload)

    with pytest.raises(StoreError) as exc_info:
        comment_service.resolve_with_replacement(db, small_client, path, b"edited", photographer_id)

    assert not isinstance(exc_info.value, comment_service.CommentResolutionError)
    comments = comment_service.list_comments(db, small_client.id, path)
    assert comments[0].resolved_at is None


def test_failed_resolve_after_upload_is_reported(db, small_client, photographer_id, monkeypatch):
    path = _photo(small_client)
    comment_service.add_comment(db, small_client.id, path, "too dark")

    def failing_resolve(*args, **kwargs):
        raise StoreError("Failed to resolve comments")

    monkeypatch.setattr(comment_service, "resolve_comments", failing_resolve)

    with pytest.raises(comment_service.CommentResolutionError):
        comment_service.resolve_with_replacement(db, small_client, path, b"edited", photographer_id)

    assert blob_store.download(PhotoStage.ALL_PHOTOS, small_client.id, "IMG_0001.jpg") == b"edited"


def test_empty_replacement_rejected(db, small_client, photographer_id):
    path = _photo(small_client)

    with pytest.raises(ValidationError):
        comment_service.resolve_with_replacement(db, small_client, path, b"", photographer_id)


def test_resolve_is_idempotent(db, small_client, photographer_id):
    path = _photo(small_client)
    comment_service.add_comment(db, small_client.id, path, "too dark")

    assert comment_service.resolve_comments(db, small_client, path, photographer_id) == 1
    assert comment_service.resolve_comments(db, small_client, path, photographer_id) == 0


def test_comment_events_published(db, small_client, photographer_id):
    path = _photo(small_client)
    events = []
    unsubscribe = feed.subscribe(ChangeTable.PHOTO_COMMENTS, events.append, client_id=small_client.id)
    try:
        comment_service.add_comment(db, small_client.id, path, "too dark")
        comment_service.resolve_comments(db, small_client, path, photographer_id)
    finally:
        unsubscribe()

    assert [e.event for e in events] == ["INSERT", "UPDATE"]
    assert all(e.client_id == small_client.id for e in events)
