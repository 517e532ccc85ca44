"""
Late-return penalty calculation.

Company policy: a car is due back by the cutoff hour (09:00) on its return
date. Any return strictly after the cutoff is late with no grace period, and
every started 24 hours past the cutoff is charged as a full day plus a late
fee on top.
"""

import logging
import math
from datetime import date, datetime, time
from decimal import Decimal

from ..models.financial import PenaltyCalculation
from ..utils.config import RentalConfig
from ..utils.timeutils import Amount, ceil_hours, round_money, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF_HOUR = 9
DEFAULT_LATE_FEE_RATE = Decimal("0.10")


class ReturnPenaltyCalculator:
    """
    Pure calculator for late-return penalties.

    The result depends only on the expected end date, the actual return
    time and the daily rate. Payment of the penalty is enforced by the
    booking state machine, not here.
    """

    def __init__(
        self,
        cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
        late_fee_rate: Amount = DEFAULT_LATE_FEE_RATE,
        minor_units: int = 100
    ):
        self.cutoff_hour = cutoff_hour
        self.late_fee_rate = to_decimal(late_fee_rate)
        self.minor_units = minor_units

    @classmethod
    def from_config(cls, config: RentalConfig) -> "ReturnPenaltyCalculator":
        return cls(
            cutoff_hour=config.return_cutoff_hour,
            late_fee_rate=config.late_fee_rate,
            minor_units=config.currency_minor_units,
        )

    def cutoff_for(self, expected_end_date: date, tzinfo=None) -> datetime:
        """Return deadline on the expected end date, in the return time's zone."""
        if isinstance(expected_end_date, datetime):
            expected_end_date = expected_end_date.date()
        return datetime.combine(expected_end_date, time(self.cutoff_hour), tzinfo=tzinfo)

    def compute_penalty(
        self,
        expected_end_date: date,
        actual_return_time: datetime,
        daily_rate: Amount
    ) -> PenaltyCalculation:
        """
        Compute the penalty for a return.

        Args:
            expected_end_date: Booking end date
            actual_return_time: When the car actually came back
            daily_rate: Booking daily rate snapshot

        Returns:
            PenaltyCalculation: Zeroes when on time, otherwise the charge breakdown
        """
        cutoff = self.cutoff_for(expected_end_date, actual_return_time.tzinfo)

        if actual_return_time <= cutoff:
            return PenaltyCalculation(
                is_late=False,
                explanation="Returned on time. No penalty applies.",
            )

        late_hours = ceil_hours(actual_return_time - cutoff)
        late_days = max(1, math.ceil(late_hours / 24))
        penalty_amount = round_money(to_decimal(daily_rate) * late_days, self.minor_units)
        late_fee = round_money(penalty_amount * self.late_fee_rate, self.minor_units)

        logger.debug(
            f"Late return: {late_hours}h past {cutoff.isoformat()} -> {late_days} day(s)"
        )

        return PenaltyCalculation(
            is_late=True,
            late_hours=late_hours,
            late_days=late_days,
            penalty_amount=penalty_amount,
            late_fee=late_fee,
            total_amount=penalty_amount + late_fee,
            explanation=(
                f"Returned {late_hours} hours late. Company policy: Any return after "
                f"{self._cutoff_label()} incurs full day penalty."
            ),
        )

    def _cutoff_label(self) -> str:
        hour = self.cutoff_hour % 12 or 12
        suffix = "AM" if self.cutoff_hour < 12 else "PM"
        return f"{hour}:00 {suffix}"
