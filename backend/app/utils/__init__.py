from .errors import (
    BookingConflictError,
    BookingValidationError,
    CooldownActiveError,
    NotAuthenticatedError,
    NotAuthorizedError,
    NotFoundError,
    PaymentProviderError,
    PaymentStateError,
    SchedulingError,
)

__all__ = [
    "SchedulingError",
    "BookingValidationError",
    "PaymentStateError",
    "NotAuthenticatedError",
    "NotAuthorizedError",
    "NotFoundError",
    "BookingConflictError",
    "CooldownActiveError",
    "PaymentProviderError",
]
