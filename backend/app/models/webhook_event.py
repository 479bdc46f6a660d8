from sqlalchemy import JSON, Boolean, Column, Integer, String, Text

from .base import BaseModel
from .types import UTCDateTime


class WebhookEvent(BaseModel):
    """Dedup ledger for payment-provider webhook deliveries.

    A row is written (and committed) as soon as an event id is seen; side
    effects are applied only while ``processed`` is false.
    """

    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    external_event_id = Column(String(128), nullable=False, unique=True, index=True)
    event_type = Column(String(128), nullable=False)
    processed = Column(Boolean, nullable=False, default=False, index=True)
    processed_at = Column(UTCDateTime, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    outcome = Column(String(64), nullable=True)
    payload = Column(JSON, nullable=True)
