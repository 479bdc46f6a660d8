# backend/app/api/api_policy.py

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from ..crud import crud_policy
from ..database import get_db
from ..schemas.policy import BookingPermissionResponse, DepositPolicyIn, DepositPolicyResponse
from ..services.deposit_policy import SUGGESTED_TERMS, PolicyTerms, is_enabled
from ..utils.errors import BookingValidationError, NotAuthorizedError
from .dependencies import get_current_actor_id

router = APIRouter(tags=["policies"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


def _policy_payload(provider_id: str, terms: PolicyTerms, *, is_default: bool) -> dict:
    return {
        "provider_id": provider_id,
        "mode": terms.mode,
        "amount_cents": terms.amount_cents,
        "percent": terms.percent,
        "min_cents": terms.min_cents,
        "max_cents": terms.max_cents,
        "non_refundable": terms.non_refundable,
        "cutoff_hours": terms.cutoff_hours,
        "enabled": not is_default and is_enabled(terms),
        "is_default": is_default,
    }


def _require_provider(provider_id: str, actor_id: str) -> None:
    if actor_id != provider_id:
        raise NotAuthorizedError("Only the provider can manage their deposit policy")


@router.get("/{provider_id}", response_model=DepositPolicyResponse)
def read_policy(provider_id: str, db: Session = Depends(get_db)) -> Any:
    """Saved policy, or the suggested starting values when none exists."""
    policy = crud_policy.get_policy(db, provider_id)
    if policy is None:
        return _policy_payload(provider_id, SUGGESTED_TERMS, is_default=True)
    return _policy_payload(provider_id, PolicyTerms.from_model(policy), is_default=False)


@router.put("/{provider_id}", response_model=DepositPolicyResponse)
def upsert_policy(
    provider_id: str,
    policy_in: DepositPolicyIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    _require_provider(provider_id, actor_id)
    policy = crud_policy.upsert_policy(db, provider_id, policy_in.model_dump())
    logger.info("Deposit policy saved for provider=%s mode=%s", provider_id, policy.mode)
    return _policy_payload(provider_id, PolicyTerms.from_model(policy), is_default=False)


@router.post("/{provider_id}/permissions/{client_id}", response_model=BookingPermissionResponse)
def grant_permission(
    provider_id: str,
    client_id: str,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    """Allow *client_id* to book. Needs a configured, enabled deposit policy."""
    _require_provider(provider_id, actor_id)
    policy = crud_policy.get_policy(db, provider_id)
    if policy is None or not is_enabled(PolicyTerms.from_model(policy)):
        raise BookingValidationError(
            "Configure a deposit policy before enabling bookings", code="policy_not_configured"
        )
    return crud_policy.set_permission(db, provider_id, client_id, enabled=True)


@router.delete("/{provider_id}/permissions/{client_id}", response_model=BookingPermissionResponse)
def revoke_permission(
    provider_id: str,
    client_id: str,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    _require_provider(provider_id, actor_id)
    return crud_policy.set_permission(db, provider_id, client_id, enabled=False)
