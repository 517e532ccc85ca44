"""
Main entry point for the car rental booking core.
"""

import logging
from typing import Optional

from carrental.cache import ValkeyClient, ValkeyConfig
from carrental.database import SqlBookingDataService, initialize_database
from carrental.services import BookingStateMachine, PaymentSettlement, PaymentTracker
from carrental.services.interfaces import PaymentGateway
from carrental.utils.config import RentalConfig, get_config


def build_checkout(
    config: RentalConfig,
    state_machine: BookingStateMachine,
    gateway: Optional[PaymentGateway] = None
) -> PaymentSettlement:
    """
    Wire checkout with payment records kept in Valkey.

    The Valkey client connects on first use, so building checkout never
    blocks on the cache.
    """
    client = ValkeyClient(ValkeyConfig.from_config(config))
    tracker = PaymentTracker.from_config(config, client)
    return PaymentSettlement.from_config(config, state_machine, gateway=gateway, tracker=tracker)


def main() -> int:
    """Load configuration, prepare the database and wire the booking core."""
    print("Car rental booking core")
    print("=" * 50)

    try:
        config = get_config()
        logging.basicConfig(
            level=logging.DEBUG if config.debug else config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        print("✓ Configuration loaded successfully")

        db_config = initialize_database(config.database_url, echo=config.debug)
        print(f"✓ Database ready ({db_config.db_type})")

        state_machine = BookingStateMachine.from_config(config, SqlBookingDataService(db_config))
        print(f"✓ Booking core ready (currency {config.currency})")

        settlement = build_checkout(config, state_machine)
        print(f"✓ Checkout ready (payment records on {settlement.tracker.client.config})")
        if settlement.gateway is None:
            print("   No payment gateway configured: mobile money checkout is disabled")

    except Exception as e:
        print(f"❌ Failed to start booking core: {e}")
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
