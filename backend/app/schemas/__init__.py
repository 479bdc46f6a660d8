from .availability import (
    AvailabilityTemplateIn,
    AvailabilityTemplateResponse,
    SlotWindow,
    TimeRange,
    WeeklySchedule,
)
from .booking import (
    BookingCreate,
    BookingResponse,
    CancelRequest,
    NoShowRequest,
    RescheduleRequest,
    SessionBookingCreate,
)
from .billing import (
    DepositIntentResponse,
    FinalPaymentIntentResponse,
    PaymentIntentRequest,
    WebhookAck,
)
from .policy import BookingPermissionResponse, DepositPolicyIn, DepositPolicyResponse
