"""ORM models package export."""

from sailingloc.models.audit_event import AuditEvent
from sailingloc.models.boat import Boat
from sailingloc.models.booking import Booking
from sailingloc.models.checkout import CheckoutStep, ReservationCheckout
from sailingloc.models.payment import PaymentTransaction, PaymentTransactionStatus
from sailingloc.models.unavailable_period import AvailabilityBlock
from sailingloc.models.user import User, UserRole, UserStatus

__all__ = [
    "AuditEvent",
    "AvailabilityBlock",
    "Boat",
    "Booking",
    "CheckoutStep",
    "PaymentTransaction",
    "PaymentTransactionStatus",
    "ReservationCheckout",
    "User",
    "UserRole",
    "UserStatus",
]
