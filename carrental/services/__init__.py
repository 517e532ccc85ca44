"""
Booking core services.

Pure calculators for pricing, refunds and return penalties, the draft
validator, the booking state machine and the checkout flow that settles
mobile money payments before a booking is created.
"""

from .pricing import PricingCalculator, compute_total, rental_days
from .refund_policy import RefundPolicyEngine, REFUND_TIERS
from .return_penalty import ReturnPenaltyCalculator
from .booking_validator import BookingValidator, is_ghana_phone_number
from .interfaces import BookingDataService, PaymentGateway, NotificationService
from .notifications import NotificationDispatcher, LoggingNotificationService
from .payment_tracker import PaymentTracker
from .state_machine import BookingStateMachine, ALLOWED_TRANSITIONS, can_transition
from .payment_settlement import PaymentSettlement

__all__ = [
    "PricingCalculator",
    "compute_total",
    "rental_days",
    "RefundPolicyEngine",
    "REFUND_TIERS",
    "ReturnPenaltyCalculator",
    "BookingValidator",
    "is_ghana_phone_number",
    "BookingDataService",
    "PaymentGateway",
    "NotificationService",
    "NotificationDispatcher",
    "LoggingNotificationService",
    "PaymentTracker",
    "BookingStateMachine",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "PaymentSettlement",
]
