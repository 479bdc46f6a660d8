from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .. import models
from ..db_utils import insert_ignore


def get_policy(db: Session, provider_id: str) -> Optional[models.DepositPolicy]:
    return db.query(models.DepositPolicy).filter(models.DepositPolicy.provider_id == provider_id).first()


def upsert_policy(db: Session, provider_id: str, data: Dict[str, Any]) -> models.DepositPolicy:
    policy = get_policy(db, provider_id)
    if policy is None:
        policy = models.DepositPolicy(provider_id=provider_id)
        db.add(policy)
    for key, value in data.items():
        setattr(policy, key, value)
    db.commit()
    db.refresh(policy)
    return policy


def get_permission(db: Session, provider_id: str, client_id: str) -> Optional[models.ClientBookingPermission]:
    return (
        db.query(models.ClientBookingPermission)
        .filter(
            models.ClientBookingPermission.provider_id == provider_id,
            models.ClientBookingPermission.client_id == client_id,
        )
        .first()
    )


def set_permission(
    db: Session, provider_id: str, client_id: str, *, enabled: bool, granted_by: str = "provider"
) -> models.ClientBookingPermission:
    perm = get_permission(db, provider_id, client_id)
    if perm is None:
        perm = models.ClientBookingPermission(provider_id=provider_id, client_id=client_id)
        db.add(perm)
    perm.enabled = enabled
    perm.granted_by = granted_by
    db.commit()
    db.refresh(perm)
    return perm


def get_active_cooldown(
    db: Session, client_id: str, provider_id: str, now: datetime
) -> Optional[models.BookingCooldown]:
    return (
        db.query(models.BookingCooldown)
        .filter(
            models.BookingCooldown.client_id == client_id,
            models.BookingCooldown.provider_id == provider_id,
            models.BookingCooldown.expires_at > now,
        )
        .first()
    )


def start_cooldown(
    db: Session, client_id: str, provider_id: str, expires_at: datetime, reason: str
) -> None:
    """Create or extend a cooldown. Flushes only; the caller commits."""
    insert_ignore(
        db,
        models.BookingCooldown,
        {"client_id": client_id, "provider_id": provider_id, "expires_at": expires_at, "reason": reason},
        ("client_id", "provider_id"),
    )
    db.query(models.BookingCooldown).filter(
        models.BookingCooldown.client_id == client_id,
        models.BookingCooldown.provider_id == provider_id,
    ).update({"expires_at": expires_at, "reason": reason}, synchronize_session=False)
