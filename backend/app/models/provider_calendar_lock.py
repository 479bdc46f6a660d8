from sqlalchemy import Column, Integer, String

from ..database import Base


class ProviderCalendarLock(Base):
    """Per-provider row that reservations update to serialize on a calendar."""

    __tablename__ = "provider_calendar_locks"

    provider_id = Column(String(64), primary_key=True)
    version = Column(Integer, nullable=False, default=0)
