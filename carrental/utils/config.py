"""
Environment configuration loader with validation for the booking core.
"""

import os
from decimal import Decimal
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv


class RentalConfig(BaseModel):
    """Configuration model for the car rental booking core with validation."""

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///car_rental.db", description="Database connection URL"
    )

    # Valkey Configuration (payment transaction tracking)
    valkey_host: str = Field(default="localhost", description="Valkey server host")
    valkey_port: int = Field(
        default=6379, ge=1, le=65535, description="Valkey server port"
    )
    valkey_password: Optional[str] = Field(
        default=None, description="Valkey server password"
    )
    valkey_database: int = Field(
        default=0, ge=0, le=15, description="Valkey database number"
    )

    # Application Configuration
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # Currency
    currency: str = Field(default="GHS", min_length=3, max_length=3, description="ISO currency code")
    currency_minor_units: int = Field(
        default=100, ge=1, description="Minor units per major unit (pesewas per cedi)"
    )

    # Pricing and penalty policy
    driver_surcharge_per_day: Decimal = Field(
        default=Decimal("50"), ge=0, description="Per-day fee for a staff driver"
    )
    insurance_rate: Decimal = Field(
        default=Decimal("0.15"), ge=0, le=1, description="Insurance share of the running total"
    )
    late_fee_rate: Decimal = Field(
        default=Decimal("0.10"), ge=0, le=1, description="Late fee share of the penalty"
    )
    return_cutoff_hour: int = Field(
        default=9, ge=0, le=23, description="Hour on the return date after which a return is late"
    )

    # Payment tracking
    payment_record_ttl_seconds: int = Field(
        default=86400, ge=60, description="How long mobile money transaction records are kept"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


def load_config(env_file: Optional[str] = None) -> RentalConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        RentalConfig: Validated configuration object

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    try:
        config_data: Dict[str, Any] = {
            "database_url": os.getenv("DATABASE_URL", "sqlite:///car_rental.db"),
            "valkey_host": os.getenv("VALKEY_HOST", "localhost"),
            "valkey_port": int(os.getenv("VALKEY_PORT", "6379")),
            "valkey_password": os.getenv("VALKEY_PASSWORD") or None,
            "valkey_database": int(os.getenv("VALKEY_DATABASE", "0")),
            "debug": _env_flag("RENTAL_DEBUG", "false"),
            "log_level": os.getenv("RENTAL_LOG_LEVEL", "INFO"),
            "currency": os.getenv("RENTAL_CURRENCY", "GHS"),
            "currency_minor_units": int(os.getenv("RENTAL_CURRENCY_MINOR_UNITS", "100")),
            "driver_surcharge_per_day": os.getenv("RENTAL_DRIVER_SURCHARGE_PER_DAY", "50"),
            "insurance_rate": os.getenv("RENTAL_INSURANCE_RATE", "0.15"),
            "late_fee_rate": os.getenv("RENTAL_LATE_FEE_RATE", "0.10"),
            "return_cutoff_hour": int(os.getenv("RENTAL_RETURN_CUTOFF_HOUR", "9")),
            "payment_record_ttl_seconds": int(os.getenv("RENTAL_PAYMENT_RECORD_TTL", "86400")),
        }
        return RentalConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


# Global configuration instance
_config: Optional[RentalConfig] = None


def get_config() -> RentalConfig:
    """
    Get the global configuration instance, loading it if necessary.

    Returns:
        RentalConfig: The global configuration object
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
