from sqlalchemy import Column

from ..database import Base  # This is the same Base created by declarative_base()
from .types import UTCDateTime, utcnow


class BaseModel(Base):
    __abstract__ = True

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)
