"""Package catalogue endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.schemas.package import PackageRead
from app.services import package_service

router = APIRouter(prefix="/packages", tags=["packages"])


@router.get("", response_model=list[PackageRead])
def list_packages(db: Session = Depends(get_db)):
    """List packages, cheapest first."""
    return package_service.list_packages(db)


@router.get("/{package_id}", response_model=PackageRead)
def get_package(package_id: UUID, db: Session = Depends(get_db)):
    return package_service.get_package(db, package_id)
