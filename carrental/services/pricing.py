"""
Rental price computation.

Totals are built from the daily rate snapshot, the rental duration in whole
days, an optional per-day driver surcharge and optional insurance charged on
the running total.
"""

import logging
from decimal import Decimal
from typing import Optional

from ..utils.config import RentalConfig
from ..utils.timeutils import DateLike, Amount, days_between, round_money, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_DRIVER_SURCHARGE_PER_DAY = Decimal("50")
DEFAULT_INSURANCE_RATE = Decimal("0.15")


def rental_days(start_date: DateLike, end_date: DateLike) -> int:
    """
    Rental duration in whole days, never less than one.

    A same-day or inverted range still bills one day so a booking that got
    past validation can never be free.
    """
    return max(1, days_between(start_date, end_date))


class PricingCalculator:
    """
    Pure calculator for booking totals.

    Identical inputs always give identical totals, so historical bookings
    can be re-derived for audit.
    """

    def __init__(
        self,
        driver_surcharge_per_day: Amount = DEFAULT_DRIVER_SURCHARGE_PER_DAY,
        insurance_rate: Amount = DEFAULT_INSURANCE_RATE,
        minor_units: int = 100
    ):
        self.driver_surcharge_per_day = to_decimal(driver_surcharge_per_day)
        self.insurance_rate = to_decimal(insurance_rate)
        self.minor_units = minor_units

    @classmethod
    def from_config(cls, config: RentalConfig) -> "PricingCalculator":
        return cls(
            driver_surcharge_per_day=config.driver_surcharge_per_day,
            insurance_rate=config.insurance_rate,
            minor_units=config.currency_minor_units,
        )

    def compute_total(
        self,
        daily_rate: Amount,
        start_date: DateLike,
        end_date: DateLike,
        has_driver: bool = False,
        insurance_coverage: bool = False
    ) -> Decimal:
        """
        Compute the total rental cost.

        Args:
            daily_rate: Car daily rate
            start_date: Pickup date
            end_date: Return date
            has_driver: Add the per-day driver surcharge
            insurance_coverage: Add insurance on top of base plus surcharge

        Returns:
            Decimal: Total amount rounded to the minor unit
        """
        days = rental_days(start_date, end_date)
        total = to_decimal(daily_rate) * days

        if has_driver:
            total += self.driver_surcharge_per_day * days

        if insurance_coverage:
            total += total * self.insurance_rate

        total = round_money(total, self.minor_units)

        logger.debug(
            f"Priced {days} day(s) at {daily_rate}/day "
            f"(driver={has_driver}, insurance={insurance_coverage}): {total}"
        )
        return total

    def breakdown(
        self,
        daily_rate: Amount,
        start_date: DateLike,
        end_date: DateLike,
        has_driver: bool = False,
        insurance_coverage: bool = False
    ) -> dict:
        """Line items behind compute_total, for summaries and receipts."""
        days = rental_days(start_date, end_date)
        base = to_decimal(daily_rate) * days
        driver_fee = self.driver_surcharge_per_day * days if has_driver else Decimal("0")
        insurance_fee = (base + driver_fee) * self.insurance_rate if insurance_coverage else Decimal("0")
        insurance_fee = round_money(insurance_fee, self.minor_units)

        return {
            "days": days,
            "base": base,
            "driver_fee": driver_fee,
            "insurance_fee": insurance_fee,
            "total": round_money(base + driver_fee + insurance_fee, self.minor_units),
        }


_default_calculator: Optional[PricingCalculator] = None


def compute_total(
    daily_rate: Amount,
    start_date: DateLike,
    end_date: DateLike,
    has_driver: bool = False,
    insurance_coverage: bool = False
) -> Decimal:
    """Compute a total with the default pricing policy."""
    global _default_calculator
    if _default_calculator is None:
        _default_calculator = PricingCalculator()
    return _default_calculator.compute_total(
        daily_rate, start_date, end_date, has_driver, insurance_coverage
    )
