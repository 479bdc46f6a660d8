from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models


def get_billing(db: Session, billing_id: int) -> Optional[models.BillingRecord]:
    return db.query(models.BillingRecord).filter(models.BillingRecord.id == billing_id).first()


def get_billing_by_external_ref(db: Session, external_ref: str) -> Optional[models.BillingRecord]:
    return (
        db.query(models.BillingRecord)
        .filter(models.BillingRecord.external_ref == external_ref)
        .order_by(models.BillingRecord.id.desc())
        .first()
    )


def get_billing_for_booking(db: Session, booking_id: int) -> List[models.BillingRecord]:
    return (
        db.query(models.BillingRecord)
        .filter(models.BillingRecord.booking_id == booking_id)
        .order_by(models.BillingRecord.id.asc())
        .all()
    )
