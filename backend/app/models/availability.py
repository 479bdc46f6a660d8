from sqlalchemy import JSON, Column, Integer, String

from .base import BaseModel


class AvailabilityTemplate(BaseModel):
    """A provider's recurring weekly hours plus per-date overrides.

    ``weekly`` maps ``sun``..``sat`` to a list of ``{"start", "end"}`` ranges
    (``null`` means "use the default open range", ``[]`` means closed).
    ``exceptions`` maps ``YYYY-MM-DD`` to a list that replaces the weekly
    ranges for that date.
    """

    __tablename__ = "availability_templates"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String(64), nullable=False, unique=True, index=True)
    timezone = Column(String(64), nullable=False)
    slot_minutes = Column(Integer, nullable=False, default=60)
    weekly = Column(JSON, nullable=False, default=dict)
    exceptions = Column(JSON, nullable=False, default=dict)
