"""Deposit sizing and forfeiture rules.

Amounts are integer cents. Percentage deposits round half-up, then clamp to
the policy's floor and cap.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.config import settings
from ..models import DepositMode, DepositPolicy


@dataclass(frozen=True)
class PolicyTerms:
    """Plain snapshot of a policy so the math does not need a session."""

    mode: DepositMode = DepositMode.PERCENT
    amount_cents: int = 0
    percent: float = 0.2
    min_cents: int = 0
    max_cents: Optional[int] = None
    non_refundable: bool = True
    cutoff_hours: int = 48

    @classmethod
    def from_model(cls, policy: Optional[DepositPolicy]) -> "PolicyTerms":
        if policy is None:
            return unconfigured_terms()
        return cls(
            mode=DepositMode(policy.mode),
            amount_cents=int(policy.amount_cents or 0),
            percent=float(policy.percent or 0),
            min_cents=int(policy.min_cents or 0),
            max_cents=None if policy.max_cents is None else int(policy.max_cents),
            non_refundable=bool(policy.non_refundable),
            cutoff_hours=int(policy.cutoff_hours if policy.cutoff_hours is not None else settings.DEFAULT_CUTOFF_HOURS),
        )


def unconfigured_terms() -> PolicyTerms:
    """Terms applied to providers that never saved a policy: 20%, no floor, no cap."""
    return PolicyTerms(cutoff_hours=settings.DEFAULT_CUTOFF_HOURS)


# Defaults shown to a provider editing their policy for the first time.
SUGGESTED_TERMS = PolicyTerms(
    mode=DepositMode.PERCENT,
    amount_cents=5000,
    percent=0.2,
    min_cents=5000,
    max_cents=30000,
    non_refundable=True,
    cutoff_hours=48,
)


def clamp_percent(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def compute_deposit(terms: PolicyTerms, price_cents: Optional[int]) -> int:
    """Required deposit in cents for a booking priced at ``price_cents``."""
    if terms.mode == DepositMode.FLAT:
        return max(0, int(terms.amount_cents or 0))

    price = Decimal(max(0, int(price_cents or 0)))
    raw = int((price * Decimal(str(clamp_percent(terms.percent)))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    floor = max(0, int(terms.min_cents or 0))
    deposit = max(raw, floor)
    if terms.max_cents is not None:
        deposit = min(deposit, int(terms.max_cents))
    return deposit


def is_enabled(terms: Optional[PolicyTerms]) -> bool:
    """Whether bookings (and client booking permissions) may be enabled."""
    if terms is None:
        return False
    if terms.mode == DepositMode.FLAT:
        return int(terms.amount_cents or 0) > 0
    return float(terms.percent or 0) > 0 and int(terms.min_cents or 0) > 0


def hours_until(start_at: datetime, now: datetime) -> float:
    return (start_at - now) / timedelta(hours=1)


def should_forfeit(start_at: datetime, now: datetime, cutoff_hours: int) -> bool:
    """Late notice forfeits: strictly less than ``cutoff_hours`` before start."""
    return start_at - now < timedelta(hours=cutoff_hours)
