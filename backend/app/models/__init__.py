from .booking import Booking
from .booking_status import AppointmentType, BookingStatus
from .availability import AvailabilityTemplate
from .deposit_policy import DepositMode, DepositPolicy
from .billing import BillingRecord, BillingStatus, BillingType
from .webhook_event import WebhookEvent
from .provider_calendar_lock import ProviderCalendarLock
from .client_booking_permission import ClientBookingPermission
from .booking_cooldown import BookingCooldown

__all__ = [
    "Booking",
    "BookingStatus",
    "AppointmentType",
    "AvailabilityTemplate",
    "DepositPolicy",
    "DepositMode",
    "BillingRecord",
    "BillingStatus",
    "BillingType",
    "WebhookEvent",
    "ProviderCalendarLock",
    "ClientBookingPermission",
    "BookingCooldown",
]
