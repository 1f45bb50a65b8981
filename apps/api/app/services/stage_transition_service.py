"""
Stage transition engine.

Moves selected photos one step along all-photos -> selected-photos ->
final-photos, enforcing the package's edited-photo quota on the
destination. Each file is fetched, written to the destination (overwrite)
and then deleted from the source; files are independent, so a batch can
partially succeed.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from uuid import UUID

from app.core.config import settings
from app.core.errors import (
    InvalidTransitionError,
    PartialBatchFailure,
    QuotaExceededError,
    QuotaUndefinedError,
    StoreError,
    ValidationError,
)
from app.core.stage_definitions import PIPELINE_ORDER, is_adjacent_transition, next_stage
from app.core.structured_logging import build_log_context
from app.db.enums import PhotoStage
from app.db.models import Client
from app.services import blob_store

logger = logging.getLogger(__name__)

# (client_id, target_stage) -> lock. Serialises quota check and copy within
# one process; separate processes can still race past the check.
_move_locks: dict[tuple[UUID, PhotoStage], threading.Lock] = {}
_move_locks_guard = threading.Lock()


def _move_lock(client_id: UUID, target_stage: PhotoStage) -> threading.Lock:
    with _move_locks_guard:
        return _move_locks.setdefault((client_id, target_stage), threading.Lock())


@dataclass
class Capacity:
    """Quota headroom of a destination stage for one client."""

    max_allowed: int
    current: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_allowed - self.current)

    def fits(self, requested: int) -> bool:
        return self.current + requested <= self.max_allowed


@dataclass
class MoveResult:
    source_stage: PhotoStage
    target_stage: PhotoStage
    moved: list[str] = field(default_factory=list)
    # Copied to the destination but still present in the source
    duplicates: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [
            f"{name} was copied to {self.target_stage.value} but could not be removed "
            f"from {self.source_stage.value}"
            for name in self.duplicates
        ]


def _validate_stages(source_stage: PhotoStage, target_stage: PhotoStage) -> None:
    if source_stage not in PIPELINE_ORDER or target_stage not in PIPELINE_ORDER:
        raise InvalidTransitionError("Only pipeline folders can be moved between")
    if not is_adjacent_transition(source_stage, target_stage):
        expected = next_stage(source_stage)
        if expected is None:
            raise InvalidTransitionError(f"Photos in {source_stage.value} cannot move further")
        raise InvalidTransitionError(
            f"Photos in {source_stage.value} can only move to {expected.value}"
        )


def _quota_for(client: Client) -> int:
    if client.package is None:
        raise QuotaUndefinedError("Client has no package, so no photo quota is defined")
    return client.package.max_edited_photos


# =============================================================================
# Quota
# =============================================================================

def check_capacity(client: Client, target_stage: PhotoStage) -> Capacity:
    """Current count and package limit of the destination stage."""
    if target_stage not in PIPELINE_ORDER or target_stage == PIPELINE_ORDER[0]:
        raise InvalidTransitionError(f"{target_stage.value} is not a move destination")
    return Capacity(
        max_allowed=_quota_for(client),
        current=blob_store.count_files(target_stage, client.id),
    )


def ensure_capacity(capacity: Capacity, requested: int) -> None:
    """Reject when current + requested > max; filling the quota exactly passes."""
    if not capacity.fits(requested):
        raise QuotaExceededError(
            max_allowed=capacity.max_allowed,
            current=capacity.current,
            requested=requested,
        )


# =============================================================================
# Moves
# =============================================================================

def _move_one(
    client_id: UUID,
    source_stage: PhotoStage,
    target_stage: PhotoStage,
    file_name: str,
) -> tuple[str, str | None, bool]:
    """
    Returns (file_name, copy_error, source_still_present).

    A copy error means the file was not moved and its source is intact.
    """
    try:
        data = blob_store.download(source_stage, client_id, file_name)
        blob_store.upload(target_stage, client_id, file_name, data, overwrite=True)
    except StoreError as exc:
        return file_name, exc.message, True

    try:
        blob_store.delete(source_stage, client_id, file_name)
    except StoreError as exc:
        logger.warning(
            f"Source delete failed after copy: {exc.message}",
            extra=build_log_context(client_id=client_id, stage=source_stage.value),
        )
        return file_name, None, True
    return file_name, None, False


def move_selection(
    client: Client,
    source_stage: PhotoStage,
    target_stage: PhotoStage,
    file_names: list[str],
    actor_id: UUID | None = None,
) -> MoveResult:
    """
    Move the named files from `source_stage` to the adjacent `target_stage`.

    Raises QuotaExceededError before touching any file when the batch does
    not fit, and PartialBatchFailure when some files could not be copied.
    """
    names = list(dict.fromkeys(name for name in file_names if name))
    if not names:
        raise ValidationError("Select at least one photo to move")
    _validate_stages(source_stage, target_stage)
    client_id = client.id
    for name in names:
        blob_store.object_key(client_id, name)

    log_context = build_log_context(
        user_id=actor_id, client_id=client.id, stage=target_stage.value
    )

    with _move_lock(client.id, target_stage):
        capacity = check_capacity(client, target_stage)
        # Names already in the destination are counted in `current`
        in_target = blob_store.list_file_names(target_stage, client_id)
        ensure_capacity(capacity, sum(1 for name in names if name not in in_target))

        with ThreadPoolExecutor(max_workers=max(1, settings.BLOB_MAX_CONCURRENCY)) as executor:
            outcomes = list(
                executor.map(
                    lambda name: _move_one(client_id, source_stage, target_stage, name),
                    names,
                )
            )

    result = MoveResult(source_stage=source_stage, target_stage=target_stage)
    failed: dict[str, str] = {}
    for name, copy_error, source_still_present in outcomes:
        if copy_error:
            failed[name] = copy_error
            continue
        result.moved.append(name)
        if source_still_present:
            result.duplicates.append(name)

    if failed:
        logger.warning(
            f"Move {source_stage.value} -> {target_stage.value}: "
            f"{len(result.moved)} moved, {len(failed)} failed",
            extra=log_context,
        )
        raise PartialBatchFailure("move", result.moved, failed, warnings=result.warnings)

    logger.info(
        f"Moved {len(result.moved)} photos {source_stage.value} -> {target_stage.value}",
        extra=log_context,
    )
    return result


# =============================================================================
# Duplicate Repair
# =============================================================================

def find_stage_duplicates(client_id: UUID) -> list[tuple[PhotoStage, PhotoStage, list[str]]]:
    """File names present in both stages of each adjacent pipeline pair."""
    names_by_stage = {stage: blob_store.list_file_names(stage, client_id) for stage in PIPELINE_ORDER}
    duplicates = []
    for source_stage, target_stage in zip(PIPELINE_ORDER, PIPELINE_ORDER[1:]):
        shared = sorted(names_by_stage[source_stage] & names_by_stage[target_stage])
        duplicates.append((source_stage, target_stage, shared))
    return duplicates


def retry_source_deletes(
    client_id: UUID,
    source_stage: PhotoStage,
    target_stage: PhotoStage,
    file_names: list[str] | None = None,
    actor_id: UUID | None = None,
) -> list[str]:
    """
    Re-run delete-from-source for files already present in the destination.

    Only names found in `target_stage` are deleted, so this never drops
    the last copy of a photo. Returns the deleted names.
    """
    _validate_stages(source_stage, target_stage)

    in_source = blob_store.list_file_names(source_stage, client_id)
    in_target = blob_store.list_file_names(target_stage, client_id)
    candidates = in_source & in_target
    if file_names is not None:
        candidates &= set(file_names)

    deleted: list[str] = []
    failed: dict[str, str] = {}
    for name in sorted(candidates):
        try:
            blob_store.delete(source_stage, client_id, name)
            deleted.append(name)
        except StoreError as exc:
            failed[name] = exc.message

    if failed:
        raise PartialBatchFailure("retry delete", deleted, failed)

    if deleted:
        logger.info(
            f"Removed {len(deleted)} duplicates from {source_stage.value}",
            extra=build_log_context(user_id=actor_id, client_id=client_id, stage=source_stage.value),
        )
    return deleted
