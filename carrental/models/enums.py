"""
Enums for the car rental booking core.

This module contains all enumeration types used throughout the application
for consistent data validation and type safety.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle states."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class PaymentMethod(str, Enum):
    """Ways a customer can pay for a booking."""
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    PAY_IN_SLIP = "pay_in_slip"


class PaymentStatus(str, Enum):
    """Settlement state of the booking payment."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class CarStatus(str, Enum):
    """Fleet status of a car."""
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class GatewayStatus(str, Enum):
    """Outcome of a payment gateway transaction."""
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentTransactionStatus(str, Enum):
    """Tracked state of a mobile money transaction."""
    INITIATED = "initiated"
    PAID = "paid"
    CANCELLED = "cancelled"
    FAILED = "failed"
    FULFILLED = "fulfilled"      # Booking created for the payment
    UNFULFILLED = "unfulfilled"  # Paid, but booking creation failed


TERMINAL_BOOKING_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
})

# Bookings holding a car for their date range
ACTIVE_BOOKING_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
})

# Only cash and mobile money are accepted for late-return penalties
PENALTY_PAYMENT_METHODS = frozenset({
    PaymentMethod.CASH,
    PaymentMethod.MOBILE_MONEY,
})
