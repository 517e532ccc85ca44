"""
Collaborator interfaces consumed by the booking core.

The core reaches the backend data service, the payment gateway and the
notification services only through these protocols; implementations are
injected by the surrounding application.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ContextManager, Dict, Optional, Protocol

from ..models.booking import BookingModel
from ..models.car import CarModel
from ..models.enums import BookingStatus, CarStatus, PaymentMethod, PaymentStatus
from ..models.financial import GatewayOutcome


class BookingDataService(Protocol):
    """Backend data service holding bookings and fleet status."""

    def unit_of_work(self) -> ContextManager[Any]:
        """Group writes so they commit together or roll back together."""
        ...

    def get_car(self, car_id: str) -> Optional[CarModel]:
        ...

    def get_booking(self, booking_id: str) -> Optional[BookingModel]:
        ...

    def check_availability(
        self,
        car_id: str,
        start_date: date,
        end_date: date,
        exclude_booking_id: Optional[str] = None
    ) -> bool:
        ...

    def has_other_active_booking(
        self,
        car_id: str,
        exclude_booking_id: str,
        on_date: date
    ) -> bool:
        ...

    def create_booking(self, booking: BookingModel) -> BookingModel:
        ...

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> BookingModel:
        ...

    def update_car_status(self, car_id: str, status: CarStatus) -> bool:
        """Return False when the car could not be updated."""
        ...

    def cancel_booking(
        self,
        booking_id: str,
        refund_amount: Decimal,
        reason: str,
        cancelled_at: datetime,
        payment_status: PaymentStatus
    ) -> BookingModel:
        ...

    def mark_returned(
        self,
        booking_id: str,
        actual_return_time: datetime,
        penalty_amount: Decimal,
        penalty_paid: bool,
        penalty_payment_method: Optional[PaymentMethod],
        receipt_number: Optional[str],
        completed_at: datetime,
        amount_paid: Decimal
    ) -> BookingModel:
        ...


class PaymentGateway(Protocol):
    """External payment gateway; settlement guarantees are its own."""

    async def open_transaction(
        self,
        amount_minor: int,
        currency: str,
        reference: str,
        metadata: Dict[str, Any]
    ) -> GatewayOutcome:
        """Open a transaction and wait for it to succeed, be cancelled or fail."""
        ...


class NotificationService(Protocol):
    """Fire-and-forget customer notifications."""

    def send_confirmation(self, booking: BookingModel) -> None:
        ...

    def send_receipt_email(self, booking_id: str) -> None:
        ...

    def send_receipt_sms(self, booking_id: str) -> None:
        ...
