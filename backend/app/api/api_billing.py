# backend/app/api/api_billing.py

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..database import get_db
from ..schemas.billing import (
    DepositIntentResponse,
    FinalPaymentIntentResponse,
    PaymentIntentRequest,
    WebhookAck,
)
from ..services import payment_gateway, payment_reconciler
from .dependencies import get_current_actor_id

router = APIRouter(tags=["billing"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


@router.post("/deposit/intent", response_model=DepositIntentResponse)
def create_deposit_intent(
    payload: PaymentIntentRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    """Open a payment intent for the unpaid part of the booking's deposit."""
    return payment_reconciler.request_deposit_intent(db, payload.booking_id, actor_id)


@router.post("/final-payment/intent", response_model=FinalPaymentIntentResponse)
def create_final_payment_intent(
    payload: PaymentIntentRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    """Open a payment intent for the balance left after the deposit."""
    return payment_reconciler.request_final_payment_intent(db, payload.booking_id, actor_id)


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
) -> Any:
    """Receive payment-provider events.

    Redeliveries of an event that was already applied are acknowledged with
    200 and leave no trace. Failures answer 500 so the provider retries.
    """
    body = await request.body()
    event = payment_gateway.parse_webhook(body, stripe_signature)
    logger.debug("Webhook %s (%s) received", event.get("id"), event.get("type"))
    return await run_in_threadpool(payment_reconciler.handle_webhook_event, db, event)
