"""Pydantic schemas for API request/response models."""

from app.schemas.auth import TokenPayload, UserSession
from app.schemas.client import ClientBoard, ClientCreate, ClientDetail, ClientRead, ClientUpdate
from app.schemas.comment import CommentCreate, CommentRead, CommentThread
from app.schemas.deliverable import DeliverableAction, DeliverableRead, DeliverableSummary
from app.schemas.package import PackageRead
from app.schemas.workflow import WorkflowRead

__all__ = [
    # Auth
    "TokenPayload",
    "UserSession",
    # Package
    "PackageRead",
    # Client
    "ClientCreate",
    "ClientUpdate",
    "ClientRead",
    "ClientDetail",
    "ClientBoard",
    # Deliverable
    "DeliverableAction",
    "DeliverableRead",
    "DeliverableSummary",
    # Workflow
    "WorkflowRead",
    # Comment
    "CommentCreate",
    "CommentRead",
    "CommentThread",
]
