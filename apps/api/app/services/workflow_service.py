"""
Workflow checklist for a client project.

`calculate_checklist` is a pure function of the current state; it is
re-run on every read, never patched. Manual items are persisted in
workflow_toggles and combined with the auto rules here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.structured_logging import build_log_context
from app.db.enums import (
    MANUAL_CHECKLIST_ITEMS,
    ChangeTable,
    ChecklistItemKey,
    ChecklistStatus,
    DeliverableState,
    PaymentStatus,
    PhotoStage,
)
from app.db.models import Client, Package, WorkflowToggle
from app.db.session import commit_or_raise
from app.db.upsert import upsert
from app.services import blob_store, deliverable_service
from app.services.change_feed import feed

logger = logging.getLogger(__name__)


CHECKLIST_TITLES = {
    ChecklistItemKey.PACKAGE: "Package Confirmation",
    ChecklistItemKey.COVERAGE: "Event Coverage Completed",
    ChecklistItemKey.SELECTION: "Client Photo Selection",
    ChecklistItemKey.EDITING: "Editing & Post-Production",
    ChecklistItemKey.DELIVERABLES: "Final Deliverables Ready",
    ChecklistItemKey.REVIEW: "Client Review & Feedback",
    ChecklistItemKey.DELIVERY: "Final Delivery Completed",
    ChecklistItemKey.PAYMENT: "Payment Closed",
}

CHECKLIST_DESCRIPTIONS = {
    ChecklistItemKey.PACKAGE: "Auto-checked when a package is selected",
    ChecklistItemKey.COVERAGE: "Marked done by the photographer after the event",
    ChecklistItemKey.SELECTION: "Marked done when the client has finished choosing photos",
    ChecklistItemKey.EDITING: "Auto-checked when final photos match selected photos, or marked done",
    ChecklistItemKey.DELIVERABLES: "Completed when every package deliverable is approved",
    ChecklistItemKey.REVIEW: "Marked done once client feedback is addressed",
    ChecklistItemKey.DELIVERY: "Marked done by the photographer",
    ChecklistItemKey.PAYMENT: "Auto-checked when payment status is paid",
}


@dataclass
class ChecklistItem:
    key: ChecklistItemKey
    status: ChecklistStatus
    auto_done: bool = False
    manually_done: bool = False
    sub_items: list[tuple[str, DeliverableState]] = field(default_factory=list)

    @property
    def title(self) -> str:
        return CHECKLIST_TITLES[self.key]

    @property
    def description(self) -> str:
        return CHECKLIST_DESCRIPTIONS[self.key]

    @property
    def manual(self) -> bool:
        return self.key in MANUAL_CHECKLIST_ITEMS


@dataclass
class Checklist:
    items: list[ChecklistItem]

    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.status == ChecklistStatus.DONE)

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def progress_percentage(self) -> float:
        return 100 * self.completed_count / self.total_count


def _status(done: bool, started: bool = False) -> ChecklistStatus:
    if done:
        return ChecklistStatus.DONE
    return ChecklistStatus.IN_PROGRESS if started else ChecklistStatus.PENDING


def calculate_checklist(
    client: Client,
    package: Package | None,
    deliverable_states: dict[str, DeliverableState],
    selected_photos_count: int,
    final_photos_count: int,
    manual_done: dict[ChecklistItemKey, bool] | None = None,
) -> Checklist:
    """
    Derive the eight checklist items in display order.

    `selected_photos_count` is every photo the client chose, including the
    ones already promoted to final. Manual flags only apply to manual items.
    """
    manual_done = {
        key: bool(done)
        for key, done in (manual_done or {}).items()
        if key in MANUAL_CHECKLIST_ITEMS
    }
    has_package = client.package_id is not None and package is not None

    catalogue = list(package.deliverables) if package else []
    sub_items = [
        (name, deliverable_states.get(name, DeliverableState.NOT_STARTED)) for name in catalogue
    ]
    deliverables_done = has_package and all(
        state == DeliverableState.APPROVED for _, state in sub_items
    )
    deliverables_started = any(state != DeliverableState.NOT_STARTED for _, state in sub_items)

    editing_auto = (
        has_package
        and selected_photos_count > 0
        and final_photos_count == selected_photos_count
    )

    def manual_item(key: ChecklistItemKey, started: bool = False, auto: bool = False) -> ChecklistItem:
        by_hand = manual_done.get(key, False)
        return ChecklistItem(
            key=key,
            status=_status(auto or by_hand, started),
            auto_done=auto,
            manually_done=by_hand,
        )

    items = [
        ChecklistItem(
            key=ChecklistItemKey.PACKAGE,
            status=_status(client.package_id is not None),
            auto_done=client.package_id is not None,
        ),
        manual_item(ChecklistItemKey.COVERAGE),
        manual_item(ChecklistItemKey.SELECTION, started=selected_photos_count > 0),
        manual_item(ChecklistItemKey.EDITING, started=final_photos_count > 0, auto=editing_auto),
        ChecklistItem(
            key=ChecklistItemKey.DELIVERABLES,
            status=_status(deliverables_done, deliverables_started),
            auto_done=deliverables_done,
            sub_items=sub_items,
        ),
        manual_item(ChecklistItemKey.REVIEW),
        manual_item(ChecklistItemKey.DELIVERY),
        ChecklistItem(
            key=ChecklistItemKey.PAYMENT,
            status=_status(client.payment_status == PaymentStatus.PAID.value),
            auto_done=client.payment_status == PaymentStatus.PAID.value,
        ),
    ]
    return Checklist(items=items)


# =============================================================================
# Loaders and Manual Toggles
# =============================================================================

def get_manual_toggles(db: Session, client_id: UUID) -> dict[ChecklistItemKey, bool]:
    rows = db.execute(
        select(WorkflowToggle).where(WorkflowToggle.client_id == client_id)
    ).scalars().all()
    return {
        ChecklistItemKey(row.item_key): row.is_done
        for row in rows
        if row.item_key in ChecklistItemKey._value2member_map_
    }


def get_client_workflow(db: Session, client: Client) -> Checklist:
    """Load every dependency fresh and run the calculator."""
    selected_in_stage = blob_store.count_files(PhotoStage.SELECTED_PHOTOS, client.id)
    final_count = blob_store.count_files(PhotoStage.FINAL_PHOTOS, client.id)
    status_map = deliverable_service.get_status_map(db, client.id)

    return calculate_checklist(
        client=client,
        package=client.package,
        deliverable_states={name: entry.status for name, entry in status_map.items()},
        selected_photos_count=selected_in_stage + final_count,
        final_photos_count=final_count,
        manual_done=get_manual_toggles(db, client.id),
    )


def set_manual_item(
    db: Session,
    client: Client,
    item_key: ChecklistItemKey,
    done: bool,
    actor_id: UUID | None = None,
) -> Checklist:
    """Tick or untick a manual item; repeating the same value changes nothing."""
    if item_key not in MANUAL_CHECKLIST_ITEMS:
        raise ValidationError(f"'{CHECKLIST_TITLES[item_key]}' is derived automatically")

    client_id = client.id
    upsert(
        db,
        WorkflowToggle,
        {"client_id": client_id, "item_key": item_key.value, "is_done": done, "updated_by": actor_id},
        conflict_columns=["client_id", "item_key"],
        update_columns=["is_done", "updated_by"],
    )
    commit_or_raise(db, "update workflow checklist")
    feed.publish(ChangeTable.WORKFLOW_TOGGLES, client_id)

    logger.info(
        f"Checklist item {item_key.value} set to {'done' if done else 'pending'}",
        extra=build_log_context(user_id=actor_id, client_id=client_id),
    )
    return get_client_workflow(db, client)
