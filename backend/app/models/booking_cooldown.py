from sqlalchemy import Column, Integer, String, UniqueConstraint

from .base import BaseModel
from .types import UTCDateTime


class BookingCooldown(BaseModel):
    """Blocks a client from re-booking a provider until ``expires_at``."""

    __tablename__ = "booking_cooldowns"
    __table_args__ = (
        UniqueConstraint("client_id", "provider_id", name="uq_booking_cooldown_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(String(64), nullable=False, index=True)
    provider_id = Column(String(64), nullable=False, index=True)
    expires_at = Column(UTCDateTime, nullable=False)
    reason = Column(String(64), nullable=True)
