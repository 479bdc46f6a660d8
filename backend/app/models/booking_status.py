import enum


class BookingStatus(str, enum.Enum):
    """Lifecycle states of a booking.

    ``pending -> confirmed -> completed``; ``pending|confirmed -> cancelled``;
    ``confirmed -> no-show``. Cancelled, no-show and completed are terminal.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    COMPLETED = "completed"


# Bookings in these states hold their window against new reservations.
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
# Bookings in these states hide their window from slot listings.
BUSY_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


class AppointmentType(str, enum.Enum):
    CONSULTATION = "consultation"
    SESSION = "session"
