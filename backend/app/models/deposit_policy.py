import enum

from sqlalchemy import Boolean, Column, Float, Integer, String

from .base import BaseModel
from .types import CaseInsensitiveEnum


class DepositMode(str, enum.Enum):
    FLAT = "flat"
    PERCENT = "percent"


class DepositPolicy(BaseModel):
    __tablename__ = "deposit_policies"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String(64), nullable=False, unique=True, index=True)
    mode = Column(
        CaseInsensitiveEnum(DepositMode, name="depositmode"),
        nullable=False,
        default=DepositMode.PERCENT,
    )
    amount_cents = Column(Integer, nullable=False, default=5000)
    percent = Column(Float, nullable=False, default=0.2)
    min_cents = Column(Integer, nullable=False, default=5000)
    max_cents = Column(Integer, nullable=True, default=30000)
    non_refundable = Column(Boolean, nullable=False, default=True)
    cutoff_hours = Column(Integer, nullable=False, default=48)
