"""
Seed the package catalogue.
Run with: python -m scripts.seed_packages

Packages are matched by name, so re-running updates them in place.
"""

import logging
from decimal import Decimal

from sqlalchemy import select

from app.core.structured_logging import configure_logging
from app.db.models import Package
from app.db.session import SessionLocal

logger = logging.getLogger(__name__)

PACKAGES = [
    {
        "name": "Essential Portrait Session",
        "price": Decimal("450.00"),
        "max_edited_photos": 25,
        "includes": ["1 hour session", "1 location", "Online gallery"],
        "deliverables": ["Edited Photos Delivered", "Raw Files Shared"],
    },
    {
        "name": "Event Coverage Package",
        "price": Decimal("1200.00"),
        "max_edited_photos": 60,
        "includes": ["4 hours coverage", "1 photographer", "Online gallery"],
        "deliverables": ["Highlight Video Ready (3–5 min)", "Raw Files Shared"],
    },
    {
        "name": "Premium Wedding Package",
        "price": Decimal("3500.00"),
        "max_edited_photos": 100,
        "includes": [
            "Full day coverage",
            "2 photographers",
            "1 videographer",
            "Pre-wedding shoot",
        ],
        "deliverables": [
            "Album Design Ready",
            "Laminated Frame(s) Ready",
            "Picstory Created (30s)",
            "Reel Videos Edited (2 x 30s)",
            "Highlight Video Ready (3–5 min)",
            "Full Video Ready",
            "Calendar Designed",
            "Raw Files Shared",
        ],
    },
]


def seed_packages(db) -> int:
    """Insert or update every catalogue package; returns how many were written."""
    for data in PACKAGES:
        package = db.execute(
            select(Package).where(Package.name == data["name"])
        ).scalar_one_or_none()
        if package is None:
            db.add(Package(**data))
            continue
        for field, value in data.items():
            setattr(package, field, value)
    db.commit()
    return len(PACKAGES)


def main():
    configure_logging()
    db = SessionLocal()
    try:
        count = seed_packages(db)
        logger.info(f"Seeded {count} packages")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
