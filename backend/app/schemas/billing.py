from typing import Optional

from pydantic import BaseModel


class PaymentIntentRequest(BaseModel):
    booking_id: int


class DepositIntentResponse(BaseModel):
    billing_id: int
    payment_intent_id: str
    client_secret: Optional[str] = None
    amount_cents: int
    currency: str


class FinalPaymentIntentResponse(DepositIntentResponse):
    deposit_applied_cents: int
    total_amount_cents: int


class WebhookAck(BaseModel):
    message: str
    outcome: Optional[str] = None
