"""Photo comments from clients and their resolution by the photographer."""

import logging
from datetime import datetime, timezone
from uuid import UUID

import nh3
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PermissionDeniedError, StoreError, ValidationError
from app.core.structured_logging import build_log_context
from app.db.enums import ChangeTable, CommentBadge, PhotoStage
from app.db.models import Client, PhotoComment
from app.db.session import commit_or_raise
from app.services import blob_store
from app.services.change_feed import feed

logger = logging.getLogger(__name__)


class CommentResolutionError(StoreError):
    """Photo was replaced but its comments could not be marked resolved."""


def sanitize_text(text: str | None) -> str:
    """Strip all markup; comments are plain text."""
    return nh3.clean(text or "", tags=set()).strip()


def _clean_optional(value: str | None) -> str | None:
    value = sanitize_text(value)
    return value or None


def split_photo_path(client_id: UUID, photo_path: str) -> str:
    """File name of a bucket-relative "{client_id}/{file_name}" path."""
    prefix = f"{client_id}/"
    if not photo_path or not photo_path.startswith(prefix):
        raise ValidationError("Photo path does not belong to this client")
    file_name = photo_path[len(prefix):]
    blob_store.object_key(client_id, file_name)
    return file_name


# =============================================================================
# Comments
# =============================================================================

def add_comment(
    db: Session,
    client_id: UUID,
    photo_path: str,
    text: str,
    commenter_name: str | None = None,
    commenter_email: str | None = None,
) -> PhotoComment:
    """Add an unresolved comment; empty or whitespace-only text is rejected."""
    split_photo_path(client_id, photo_path)
    clean_text = sanitize_text(text)
    if not clean_text:
        raise ValidationError("Comment cannot be empty")

    comment = PhotoComment(
        client_id=client_id,
        photo_path=photo_path,
        comment=clean_text,
        commenter_name=_clean_optional(commenter_name),
        commenter_email=_clean_optional(commenter_email),
    )
    db.add(comment)
    commit_or_raise(db, "add comment")
    db.refresh(comment)
    feed.publish(ChangeTable.PHOTO_COMMENTS, client_id, event="INSERT")

    logger.info("Photo comment added", extra=build_log_context(client_id=client_id))
    return comment


def list_comments(db: Session, client_id: UUID, photo_path: str) -> list[PhotoComment]:
    """Comments on one photo, oldest first."""
    return list(
        db.execute(
            select(PhotoComment)
            .where(PhotoComment.client_id == client_id, PhotoComment.photo_path == photo_path)
            .order_by(PhotoComment.created_at.asc(), PhotoComment.id.asc())
        ).scalars().all()
    )


def comment_badge(comments: list[PhotoComment]) -> CommentBadge:
    if not comments:
        return CommentBadge.NONE
    if any(c.resolved_at is None for c in comments):
        return CommentBadge.HAS_COMMENTS
    return CommentBadge.RESOLVED


def badges_for_client(db: Session, client_id: UUID) -> dict[str, CommentBadge]:
    """Badge for every photo of the client that has at least one comment."""
    rows = db.execute(
        select(PhotoComment.photo_path, PhotoComment.resolved_at).where(
            PhotoComment.client_id == client_id
        )
    ).all()

    open_paths: set[str] = set()
    paths: set[str] = set()
    for photo_path, resolved_at in rows:
        paths.add(photo_path)
        if resolved_at is None:
            open_paths.add(photo_path)

    return {
        path: CommentBadge.HAS_COMMENTS if path in open_paths else CommentBadge.RESOLVED
        for path in sorted(paths)
    }


# =============================================================================
# Resolution
# =============================================================================

def _require_photographer(client: Client, actor_id: UUID | None) -> None:
    if actor_id is None or client.photographer_id != actor_id:
        raise PermissionDeniedError("Only the client's photographer can resolve comments")


def resolve_comments(db: Session, client: Client, photo_path: str, actor_id: UUID) -> int:
    """Mark every unresolved comment on the photo resolved; returns how many."""
    _require_photographer(client, actor_id)
    client_id = client.id
    split_photo_path(client_id, photo_path)

    try:
        result = db.execute(
            update(PhotoComment)
            .where(
                PhotoComment.client_id == client_id,
                PhotoComment.photo_path == photo_path,
                PhotoComment.resolved_at.is_(None),
            )
            .values(
                resolved_at=datetime.now(timezone.utc),
                resolved_by=actor_id,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("Failed to resolve comments") from exc
    commit_or_raise(db, "resolve comments")
    db.expire_all()

    if result.rowcount:
        feed.publish(ChangeTable.PHOTO_COMMENTS, client_id)
    logger.info(
        f"Resolved {result.rowcount} photo comments",
        extra=build_log_context(user_id=actor_id, client_id=client_id),
    )
    return result.rowcount


def resolve_with_replacement(
    db: Session,
    client: Client,
    photo_path: str,
    data: bytes,
    actor_id: UUID,
    content_type: str | None = None,
) -> int:
    """
    Replace the photo in all-photos at the same path, then resolve its comments.

    A failed upload leaves the comments open. When the upload succeeded
    but resolving failed, CommentResolutionError asks for resolve_comments
    to be retried on its own.
    """
    _require_photographer(client, actor_id)
    client_id = client.id
    file_name = split_photo_path(client_id, photo_path)
    if not data:
        raise ValidationError("Replacement file is empty")

    blob_store.upload(
        PhotoStage.ALL_PHOTOS, client_id, file_name, data, content_type, overwrite=True
    )
    logger.info(
        "Photo replaced for comment resolution",
        extra=build_log_context(user_id=actor_id, client_id=client_id, stage=PhotoStage.ALL_PHOTOS.value),
    )

    try:
        return resolve_comments(db, client, photo_path, actor_id)
    except StoreError as exc:
        raise CommentResolutionError(
            "Photo was replaced but comments are still open; retry resolving the comments"
        ) from exc
