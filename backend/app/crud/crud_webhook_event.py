from datetime import datetime
from typing import Any, Dict

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import models
from ..db_utils import insert_ignore


def record_received(
    db: Session, external_event_id: str, event_type: str, payload: Dict[str, Any], now: datetime
) -> bool:
    """Insert the ledger row if it does not exist yet. Returns True when inserted."""
    inserted = insert_ignore(
        db,
        models.WebhookEvent,
        {
            "external_event_id": external_event_id,
            "event_type": event_type,
            "processed": False,
            "attempts": 0,
            "payload": payload,
            "created_at": now,
            "updated_at": now,
        },
        ("external_event_id",),
    )
    return inserted > 0


def claim(db: Session, external_event_id: str) -> bool:
    """Bump ``attempts`` on an unprocessed row; False if already processed.

    The UPDATE takes a row lock, so a concurrent delivery of the same event
    waits here until the first one commits and then sees ``processed``.
    """
    result = db.execute(
        update(models.WebhookEvent)
        .where(
            models.WebhookEvent.external_event_id == external_event_id,
            models.WebhookEvent.processed.is_(False),
        )
        .values(attempts=models.WebhookEvent.attempts + 1)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


def mark_processed(db: Session, external_event_id: str, outcome: str, now: datetime) -> None:
    db.execute(
        update(models.WebhookEvent)
        .where(models.WebhookEvent.external_event_id == external_event_id)
        .values(processed=True, processed_at=now, outcome=outcome, last_error=None, updated_at=now)
        .execution_options(synchronize_session=False)
    )


def record_failure(db: Session, external_event_id: str, error: str, now: datetime) -> None:
    """Count a failed attempt. Runs after the rollback that discarded the claim."""
    db.execute(
        update(models.WebhookEvent)
        .where(
            models.WebhookEvent.external_event_id == external_event_id,
            models.WebhookEvent.processed.is_(False),
        )
        .values(
            attempts=models.WebhookEvent.attempts + 1,
            last_error=error[:2000],
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
