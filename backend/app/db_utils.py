"""Dialect-aware helpers for statements ``create_all`` and the ORM cannot express."""

import logging
from typing import Any, Dict, Sequence

from sqlalchemy import inspect, insert, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

BOOKING_OVERLAP_CONSTRAINT = "bookings_no_overlap_per_provider"


def insert_ignore(db: Session, model: Any, values: Dict[str, Any], conflict_columns: Sequence[str]) -> int:
    """``INSERT ... ON CONFLICT DO NOTHING`` for *model*. Returns rows inserted.

    Falls back to a savepoint-guarded plain insert on dialects without an
    upsert clause.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    else:
        try:
            with db.begin_nested():
                db.execute(insert(model).values(**values))
            return 1
        except IntegrityError:
            return 0
    result = db.execute(stmt)
    return int(result.rowcount or 0)


def is_overlap_violation(exc: IntegrityError) -> bool:
    return BOOKING_OVERLAP_CONSTRAINT in str(getattr(exc, "orig", exc))


def ensure_booking_overlap_constraint(engine: Engine) -> None:
    """Add the Postgres exclusion constraint that forbids overlapping active bookings.

    Mirrors the Alembic migration for databases created with ``create_all``.
    No-op on SQLite, where reservations serialize on the database write lock.
    """
    if engine.dialect.name != "postgresql":
        return
    inspector = inspect(engine)
    if "bookings" not in inspector.get_table_names():
        return
    with engine.connect() as conn:
        exists = conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": BOOKING_OVERLAP_CONSTRAINT},
        ).scalar()
        if exists:
            return
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        conn.execute(
            text(
                f"""
                ALTER TABLE bookings
                  ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT}
                  EXCLUDE USING gist (
                    provider_id WITH =,
                    tstzrange(start_at, end_at, '[)') WITH &&
                  )
                  WHERE (status IN ('pending', 'confirmed'))
                """
            )
        )
        conn.commit()
        logger.info("Created %s exclusion constraint", BOOKING_OVERLAP_CONSTRAINT)
