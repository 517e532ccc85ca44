"""
Configuration and shared helpers for the booking core.
"""

from .config import RentalConfig, load_config, get_config, reset_config
from .timeutils import (
    to_datetime,
    ceil_days,
    ceil_hours,
    days_between,
    to_decimal,
    round_money,
    to_minor_units,
)

__all__ = [
    "RentalConfig",
    "load_config",
    "get_config",
    "reset_config",
    "to_datetime",
    "ceil_days",
    "ceil_hours",
    "days_between",
    "to_decimal",
    "round_money",
    "to_minor_units",
]
