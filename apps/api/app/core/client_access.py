"""Client access control for photographer and shared views.

- Photographer view: only the owning photographer sees the client; anyone
  else gets a 404 so client ids do not leak.
- Shared view: anyone holding the link can read the client by id.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.deps import ViewContext
from app.db.models import Client
from app.services import client_service


def get_client_for_view(db: Session, client_id: UUID, view: ViewContext) -> Client:
    """Load a client the current view may see."""
    if view.shared:
        return client_service.get_client(db, client_id)
    return client_service.get_owned_client(db, client_id, view.actor_id)
