"""Enum definitions for application constants."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Payment state of a client engagement."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid payment status."""
        return value in cls._value2member_map_


class PhotoStage(str, Enum):
    """
    Blob-store folder a stored file belongs to.

    REFERENCES sits outside the approval pipeline; the pipeline order is
    ALL_PHOTOS -> SELECTED_PHOTOS -> FINAL_PHOTOS.
    """
    REFERENCES = "references"
    ALL_PHOTOS = "all-photos"
    SELECTED_PHOTOS = "selected-photos"
    FINAL_PHOTOS = "final-photos"


class DeliverableState(str, Enum):
    """
    Review state of one package deliverable for one client.

    not-started -> pending-review -> approved
    pending-review -> revisions-needed -> pending-review
    """
    NOT_STARTED = "not-started"
    PENDING_REVIEW = "pending-review"
    REVISIONS_NEEDED = "revisions-needed"
    APPROVED = "approved"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ChecklistStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class ChecklistItemKey(str, Enum):
    """Workflow checklist items, in display order."""
    PACKAGE = "package"
    COVERAGE = "coverage"
    SELECTION = "selection"
    EDITING = "editing"
    DELIVERABLES = "deliverables"
    REVIEW = "review"
    DELIVERY = "delivery"
    PAYMENT = "payment"


# Items a photographer may tick by hand (persisted in workflow_toggles)
MANUAL_CHECKLIST_ITEMS = frozenset({
    ChecklistItemKey.COVERAGE,
    ChecklistItemKey.SELECTION,
    ChecklistItemKey.EDITING,
    ChecklistItemKey.REVIEW,
    ChecklistItemKey.DELIVERY,
})


class CommentBadge(str, Enum):
    """Aggregate comment state shown on a photo thumbnail."""
    NONE = "none"
    HAS_COMMENTS = "has-comments"
    RESOLVED = "resolved"


class ClientCategory(str, Enum):
    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ChangeTable(str, Enum):
    """Tables that publish row-level change notifications."""
    DELIVERABLE_STATUS = "deliverable_status"
    PHOTO_COMMENTS = "photo_comments"
    WORKFLOW_TOGGLES = "workflow_toggles"


DEFAULT_PAYMENT_STATUS = PaymentStatus.UNPAID
DEFAULT_DELIVERABLE_STATE = DeliverableState.NOT_STARTED
