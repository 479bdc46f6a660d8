from .crud_booking import booking
from . import crud_availability
from . import crud_billing
from . import crud_policy
from . import crud_webhook_event
