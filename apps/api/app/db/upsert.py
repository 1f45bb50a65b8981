"""Single-statement INSERT ... ON CONFLICT DO UPDATE keyed by natural key."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def upsert(
    db: Session,
    model: type,
    values: dict[str, Any],
    conflict_columns: list[str],
    update_columns: list[str],
) -> None:
    """
    Insert `values` or, when a row with the same natural key exists,
    overwrite `update_columns` and bump `updated_at`.
    """
    dialect = db.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

    stmt = insert(model).values(**values)
    set_ = {column: stmt.excluded[column] for column in update_columns}
    set_["updated_at"] = datetime.now(timezone.utc)
    stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
    db.execute(stmt)
