"""
Cancellation refund policy.

Refunds are tiered on the lead time between the cancellation and the
scheduled pickup, in whole days rounded up. Every threshold is exclusive:
exactly 7 days falls in the 50% tier, exactly 3 days in the 25% tier, and
1 day or less refunds nothing.
"""

import logging
from decimal import Decimal
from typing import Tuple

from ..models.financial import RefundDecision
from ..utils.timeutils import DateLike, Amount, days_between, round_money, to_decimal

logger = logging.getLogger(__name__)

# (days strictly greater than, refund percentage)
REFUND_TIERS: Tuple[Tuple[int, int], ...] = (
    (7, 90),
    (3, 50),
    (1, 25),
)


class RefundPolicyEngine:
    """Pure calculator for cancellation refunds."""

    def __init__(
        self,
        tiers: Tuple[Tuple[int, int], ...] = REFUND_TIERS,
        minor_units: int = 100
    ):
        self.tiers = tiers
        self.minor_units = minor_units

    def percentage_for(self, days_until_start: int) -> int:
        for threshold, percentage in self.tiers:
            if days_until_start > threshold:
                return percentage
        return 0

    def decide(
        self,
        total_amount: Amount,
        cancellation_date: DateLike,
        start_date: DateLike
    ) -> RefundDecision:
        """
        Work out the refund owed for a cancellation.

        Args:
            total_amount: Booking total
            cancellation_date: When the cancellation is requested
            start_date: Scheduled pickup

        Returns:
            RefundDecision: Amount, percentage and the reason behind it
        """
        days_until_start = days_between(cancellation_date, start_date)
        percentage = self.percentage_for(days_until_start)
        refund_amount = round_money(
            to_decimal(total_amount) * Decimal(percentage) / Decimal(100), self.minor_units
        )

        if percentage:
            reason = (
                f"Cancelled {days_until_start} day(s) before pickup: "
                f"{percentage}% refund"
            )
        else:
            reason = "Cancelled within 24 hours of pickup: no refund"

        return RefundDecision(
            refund_amount=refund_amount,
            refund_percentage=percentage,
            days_until_start=days_until_start,
            reason=reason,
        )

    def compute_refund(
        self,
        total_amount: Amount,
        cancellation_date: DateLike,
        start_date: DateLike
    ) -> Decimal:
        return self.decide(total_amount, cancellation_date, start_date).refund_amount
