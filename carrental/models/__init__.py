"""
Car rental Pydantic models package.

This package contains all Pydantic v2 models used throughout the booking
core for data validation, serialization, and type safety.
"""

# Enums
from .enums import (
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    CarStatus,
    GatewayStatus,
    PaymentTransactionStatus,
    TERMINAL_BOOKING_STATUSES,
    ACTIVE_BOOKING_STATUSES,
    PENALTY_PAYMENT_METHODS,
)

# Fleet models
from .car import CarModel

# Booking models
from .booking import (
    PayInSlipDetails,
    MobileMoneyDetails,
    BookingDraft,
    BookingModel,
)

# Derived financial models
from .financial import (
    PenaltyCalculation,
    RefundDecision,
    ValidationResult,
    GatewayOutcome,
    CheckoutResult,
)

__all__ = [
    # Enums
    "BookingStatus",
    "PaymentMethod",
    "PaymentStatus",
    "CarStatus",
    "GatewayStatus",
    "PaymentTransactionStatus",
    "TERMINAL_BOOKING_STATUSES",
    "ACTIVE_BOOKING_STATUSES",
    "PENALTY_PAYMENT_METHODS",

    # Fleet
    "CarModel",

    # Booking
    "PayInSlipDetails",
    "MobileMoneyDetails",
    "BookingDraft",
    "BookingModel",

    # Financial
    "PenaltyCalculation",
    "RefundDecision",
    "ValidationResult",
    "GatewayOutcome",
    "CheckoutResult",
]
