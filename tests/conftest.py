"""
Shared fixtures for the booking core tests.

Every test gets its own in-memory SQLite database, a fixed clock and a
fleet of two cars.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from carrental.database.config import DatabaseConfig
from carrental.database.data_service import SqlBookingDataService
from carrental.models import BookingDraft, CarModel, MobileMoneyDetails, PayInSlipDetails
from carrental.models.enums import PaymentMethod
from carrental.services.notifications import NotificationDispatcher
from carrental.services.state_machine import BookingStateMachine

NOW = datetime(2025, 3, 1, 8, 0)
TODAY = NOW.date()


class MockValkeyClient:
    """Mock Valkey client exposing the calls the payment tracker makes."""

    def __init__(self, fail: bool = False):
        self.data = {}
        self.ttls = {}
        self.fail = fail
        self.client = self

    async def ensure_connection(self):
        if self.fail:
            raise ConnectionError("valkey unavailable")

    def set(self, key, value, nx=False, ex=None):
        """Mock SET with NX and EX."""
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def get(self, key):
        return self.data.get(key)


def make_draft(**overrides) -> BookingDraft:
    """Valid cash draft for car-1: 3 days starting ten days from today, staff driver."""
    values = dict(
        customer_id="cust-1",
        car_id="car-1",
        driver_id="drv-1",
        start_date=TODAY + timedelta(days=10),
        end_date=TODAY + timedelta(days=13),
        payment_method=PaymentMethod.CASH,
    )
    values.update(overrides)
    return BookingDraft(**values)


def slip_details(**overrides) -> PayInSlipDetails:
    values = dict(
        bank_name="GCB Bank",
        branch="Osu",
        payee_name="Ama Mensah",
        reference_number="REF-778",
        slip_number="SLP-1001",
    )
    values.update(overrides)
    return PayInSlipDetails(**values)


def momo_details(phone_number: str = "0241234567") -> MobileMoneyDetails:
    return MobileMoneyDetails(provider="MTN", phone_number=phone_number)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def db_config():
    """Fresh in-memory database with tables created."""
    config = DatabaseConfig(database_url="sqlite:///:memory:")
    config.create_tables()
    yield config
    config.close()


@pytest.fixture
def data_service(db_config):
    return SqlBookingDataService(db_config)


@pytest.fixture
def cars(data_service):
    """Two available cars: car-1 at 180/day and car-2 at 250/day."""
    return [
        data_service.add_car(CarModel(
            car_id="car-1", make="Toyota", model="Corolla",
            plate_number="GR-1234-23", daily_rate=Decimal("180"),
        )),
        data_service.add_car(CarModel(
            car_id="car-2", make="Hyundai", model="Tucson",
            plate_number="GR-5678-23", daily_rate=Decimal("250"),
        )),
    ]


@pytest.fixture
def notification_service():
    return MagicMock()


@pytest.fixture
def machine(data_service, cars, clock, notification_service):
    """State machine over the in-memory database with a fixed clock."""
    return BookingStateMachine(
        data_service,
        notifier=NotificationDispatcher(notification_service),
        clock=clock,
    )


@pytest.fixture
def mock_valkey():
    return MockValkeyClient()
