import enum

from sqlalchemy import JSON, Column, ForeignKey, Integer, String

from .base import BaseModel
from .types import CaseInsensitiveEnum, UTCDateTime


class BillingType(str, enum.Enum):
    DEPOSIT = "deposit"
    FINAL_PAYMENT = "final_payment"


class BillingStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class BillingRecord(BaseModel):
    """One payment attempt against a booking."""

    __tablename__ = "billing_records"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(String(64), nullable=False)
    client_id = Column(String(64), nullable=False)
    type = Column(CaseInsensitiveEnum(BillingType, name="billingtype"), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(8), nullable=False, default="usd")
    status = Column(
        CaseInsensitiveEnum(BillingStatus, name="billingstatus"),
        nullable=False,
        default=BillingStatus.PENDING,
        index=True,
    )
    # Payment intent id at the payment provider
    external_ref = Column(String(128), nullable=True, index=True)
    deposit_applied_cents = Column(Integer, nullable=False, default=0)
    paid_at = Column(UTCDateTime, nullable=True)
    meta = Column(JSON, nullable=True)
