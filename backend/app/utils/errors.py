from typing import Any, Dict, Optional
from fastapi import status


class SchedulingError(Exception):
    """Base class for domain errors rendered as ``{"error": code, ...}``."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "bad_request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if code is not None:
            self.code = code
        self.message = message or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        body.update(self.details)
        return body


class BookingValidationError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class PaymentStateError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "payment_state_error"


class NotAuthenticatedError(SchedulingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class NotAuthorizedError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class BookingConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "slot_conflict"

    def to_body(self) -> Dict[str, Any]:
        # Clients match on this exact error string.
        body: Dict[str, Any] = {"error": "Slot already booked", "code": self.code}
        body.update(self.details)
        return body


class CooldownActiveError(SchedulingError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "cooldown_active"


class PaymentProviderError(SchedulingError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "payment_provider_error"
