from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.deposit_policy import DepositMode


class DepositPolicyIn(BaseModel):
    mode: DepositMode = DepositMode.PERCENT
    amount_cents: int = Field(default=5000, ge=0)
    percent: float = 0.2
    min_cents: int = Field(default=5000, ge=0)
    max_cents: Optional[int] = Field(default=30000, ge=0)
    non_refundable: bool = True
    cutoff_hours: int = Field(default=48, ge=0)

    @field_validator("percent")
    def clamp_percent(cls, v: float) -> float:
        return min(max(float(v), 0.0), 1.0)

    @model_validator(mode="after")
    def cap_not_below_floor(self) -> "DepositPolicyIn":
        if self.max_cents is not None and self.max_cents < self.min_cents:
            raise ValueError("max_cents must be greater than or equal to min_cents")
        return self


class DepositPolicyResponse(BaseModel):
    provider_id: str
    mode: DepositMode
    amount_cents: int
    percent: float
    min_cents: int
    max_cents: Optional[int] = None
    non_refundable: bool
    cutoff_hours: int
    enabled: bool
    is_default: bool = False


class BookingPermissionResponse(BaseModel):
    provider_id: str
    client_id: str
    enabled: bool
    granted_by: str

    model_config = {"from_attributes": True}
