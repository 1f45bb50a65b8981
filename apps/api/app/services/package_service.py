"""Package catalogue lookups."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.models import Package


def list_packages(db: Session) -> list[Package]:
    """All packages, cheapest first."""
    return list(db.execute(select(Package).order_by(Package.price.asc())).scalars().all())


def get_package(db: Session, package_id: UUID) -> Package:
    package = db.get(Package, package_id)
    if not package:
        raise NotFoundError("Package not found")
    return package
