"""
SQLAlchemy-backed booking data service.

Implements the data service the booking state machine consumes. Writes
made inside ``unit_of_work()`` share one session and commit together, so a
booking write and its paired car status update never persist separately.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..exceptions import BookingNotFoundError
from ..models.booking import BookingModel
from ..models.car import CarModel
from ..models.enums import (
    ACTIVE_BOOKING_STATUSES,
    BookingStatus,
    CarStatus,
    PaymentMethod,
    PaymentStatus,
)
from .config import DatabaseConfig
from .models import Booking, Car

logger = logging.getLogger(__name__)

_ACTIVE_STATUS_VALUES = [status.value for status in ACTIVE_BOOKING_STATUSES]
_UNBOOKABLE_CAR_STATUS_VALUES = (CarStatus.MAINTENANCE.value, CarStatus.RETIRED.value)


def _booking_row_values(booking: BookingModel) -> Dict[str, Any]:
    values = booking.model_dump(exclude={"pay_in_slip", "mobile_money"})
    for key, value in values.items():
        if isinstance(value, Enum):
            values[key] = value.value
    values["pay_in_slip"] = (
        booking.pay_in_slip.model_dump(mode="json") if booking.pay_in_slip else None
    )
    values["mobile_money"] = (
        booking.mobile_money.model_dump(mode="json") if booking.mobile_money else None
    )
    return values


class SqlBookingDataService:
    """
    Booking data service over the car and booking tables.

    Methods called outside a unit of work run in their own short session.
    """

    def __init__(self, db_config: DatabaseConfig):
        self.db = db_config
        self._session: Optional[Session] = None

    @contextmanager
    def unit_of_work(self):
        """
        Share one session across several writes.

        Commits when the block exits cleanly and rolls back on any error.
        Nested units of work join the outer one.
        """
        if self._session is not None:
            yield self._session
            return

        with self.db.get_session_context() as session:
            self._session = session
            try:
                yield session
            finally:
                self._session = None

    @contextmanager
    def _session_scope(self):
        if self._session is not None:
            yield self._session
        else:
            with self.db.get_session_context() as session:
                yield session

    # ------------------------------------------------------------------
    # Fleet
    # ------------------------------------------------------------------

    def add_car(self, car: CarModel) -> CarModel:
        with self._session_scope() as session:
            row = Car(
                car_id=car.car_id,
                make=car.make,
                model=car.model,
                plate_number=car.plate_number,
                daily_rate=car.daily_rate,
                status=car.status.value,
            )
            session.add(row)
            session.flush()
            return CarModel.model_validate(row)

    def get_car(self, car_id: str) -> Optional[CarModel]:
        with self._session_scope() as session:
            row = session.get(Car, car_id)
            return CarModel.model_validate(row) if row else None

    def update_car_status(self, car_id: str, status: CarStatus) -> bool:
        with self._session_scope() as session:
            row = session.get(Car, car_id)
            if row is None:
                logger.warning(f"Cannot update status of unknown car {car_id}")
                return False
            row.status = CarStatus(status).value
            session.flush()
            logger.debug(f"Car {car_id} marked {row.status}")
            return True

    def check_availability(
        self,
        car_id: str,
        start_date: date,
        end_date: date,
        exclude_booking_id: Optional[str] = None
    ) -> bool:
        """
        Check whether a car can be booked for a date range.

        A car is available when it exists, is not in maintenance or retired,
        and no pending or confirmed booking overlaps the range. A booking
        ending on the day another starts does not overlap it.
        """
        with self._session_scope() as session:
            car = session.get(Car, car_id)
            if car is None or car.status in _UNBOOKABLE_CAR_STATUS_VALUES:
                return False

            query = (
                select(func.count())
                .select_from(Booking)
                .where(
                    Booking.car_id == car_id,
                    Booking.status.in_(_ACTIVE_STATUS_VALUES),
                    Booking.start_date < end_date,
                    Booking.end_date > start_date,
                )
            )
            if exclude_booking_id:
                query = query.where(Booking.booking_id != exclude_booking_id)

            overlapping = session.execute(query).scalar_one()
            if overlapping:
                logger.debug(
                    f"Car {car_id} has {overlapping} overlapping booking(s) "
                    f"between {start_date} and {end_date}"
                )
            return overlapping == 0

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Optional[BookingModel]:
        with self._session_scope() as session:
            row = session.get(Booking, booking_id)
            return BookingModel.model_validate(row) if row else None

    def list_bookings(self, car_id: Optional[str] = None) -> List[BookingModel]:
        with self._session_scope() as session:
            query = select(Booking).order_by(Booking.start_date)
            if car_id:
                query = query.where(Booking.car_id == car_id)
            return [BookingModel.model_validate(row) for row in session.scalars(query)]

    def has_other_active_booking(
        self,
        car_id: str,
        exclude_booking_id: str,
        on_date: date
    ) -> bool:
        """
        True if another pending or confirmed booking still holds this car.

        A booking holds the car from its creation until its end date, so
        bookings that start after ``on_date`` count too.
        """
        with self._session_scope() as session:
            query = (
                select(func.count())
                .select_from(Booking)
                .where(
                    Booking.car_id == car_id,
                    Booking.booking_id != exclude_booking_id,
                    Booking.status.in_(_ACTIVE_STATUS_VALUES),
                    Booking.end_date >= on_date,
                )
            )
            return session.execute(query).scalar_one() > 0

    def create_booking(self, booking: BookingModel) -> BookingModel:
        with self._session_scope() as session:
            row = Booking(**_booking_row_values(booking))
            session.add(row)
            session.flush()
            return BookingModel.model_validate(row)

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> BookingModel:
        with self._session_scope() as session:
            row = self._require_booking(session, booking_id)
            row.status = BookingStatus(status).value
            session.flush()
            return BookingModel.model_validate(row)

    def cancel_booking(
        self,
        booking_id: str,
        refund_amount: Decimal,
        reason: str,
        cancelled_at: datetime,
        payment_status: PaymentStatus
    ) -> BookingModel:
        with self._session_scope() as session:
            row = self._require_booking(session, booking_id)
            row.status = BookingStatus.CANCELLED.value
            row.refund_amount = refund_amount
            row.refund_reason = reason
            row.cancelled_at = cancelled_at
            row.payment_status = PaymentStatus(payment_status).value
            session.flush()
            return BookingModel.model_validate(row)

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
        with self._session_scope() as session:
            row = self._require_booking(session, booking_id)
            row.status = BookingStatus.COMPLETED.value
            row.actual_return_time = actual_return_time
            row.penalty_amount = penalty_amount
            row.penalty_paid = penalty_paid
            row.penalty_payment_method = (
                PaymentMethod(penalty_payment_method).value if penalty_payment_method else None
            )
            row.receipt_number = receipt_number
            row.completed_at = completed_at
            row.amount_paid = amount_paid
            session.flush()
            return BookingModel.model_validate(row)

    @staticmethod
    def _require_booking(session: Session, booking_id: str) -> Booking:
        row = session.get(Booking, booking_id)
        if row is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return row
