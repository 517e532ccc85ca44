"""
Tests for the booking lifecycle state machine.

Runs against the SQLAlchemy data service on an in-memory database so the
paired booking and car writes are checked together.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from carrental.exceptions import (
    BookingNotFoundError,
    BookingValidationError,
    CarNotFoundError,
    IllegalTransitionError,
    InconsistencyError,
    PersistenceError,
)
from carrental.models import BookingModel, CarModel, PenaltyCalculation
from carrental.models.enums import BookingStatus, CarStatus, PaymentMethod, PaymentStatus
from carrental.services.state_machine import (
    ALLOWED_TRANSITIONS,
    AVAILABILITY_UNVERIFIED_MESSAGE,
    BookingStateMachine,
    can_transition,
)

from conftest import NOW, TODAY, make_draft, momo_details, slip_details


def end_of(booking: BookingModel, hour: int, minute: int = 0, days_after: int = 0) -> datetime:
    return datetime.combine(booking.end_date + timedelta(days=days_after), datetime.min.time()).replace(
        hour=hour, minute=minute
    )


class TestTransitionTable:
    """Test the allowed transition map."""

    def test_pending_transitions(self):
        assert can_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
        assert can_transition(BookingStatus.PENDING, BookingStatus.CANCELLED)
        assert not can_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)
        assert not can_transition(BookingStatus.PENDING, BookingStatus.NO_SHOW)

    def test_confirmed_transitions(self):
        for target in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW):
            assert can_transition(BookingStatus.CONFIRMED, target)

    def test_terminal_states_have_no_exits(self):
        for status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW):
            assert ALLOWED_TRANSITIONS[status] == frozenset()


class TestCreate:
    """Test booking creation."""

    def test_create_confirmed_booking(self, machine, data_service):
        booking = machine.create(make_draft())

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_status == PaymentStatus.PENDING
        assert booking.total_amount == Decimal("540")
        assert booking.daily_rate == Decimal("180")
        assert booking.created_at == NOW
        assert data_service.get_car("car-1").status == CarStatus.RENTED
        assert data_service.get_booking(booking.booking_id) is not None

    def test_price_includes_driver_and_insurance(self, machine):
        booking = machine.create(make_draft(has_driver=True, insurance_coverage=True))

        # (3 x 180 + 3 x 50) x 1.15
        assert booking.total_amount == Decimal("793.50")

    def test_confirmation_sent(self, machine, notification_service):
        booking = machine.create(make_draft())

        notification_service.send_confirmation.assert_called_once()
        sent = notification_service.send_confirmation.call_args[0][0]
        assert sent.booking_id == booking.booking_id

    def test_notification_failure_does_not_undo_booking(self, machine, data_service, notification_service):
        notification_service.send_confirmation.side_effect = RuntimeError("SMS gateway down")

        booking = machine.create(make_draft())

        assert data_service.get_booking(booking.booking_id).status == BookingStatus.CONFIRMED

    def test_invalid_draft_creates_nothing(self, machine, data_service):
        with pytest.raises(BookingValidationError) as exc_info:
            machine.create(make_draft(driver_id=None))

        assert exc_info.value.errors == ["Please select a driver"]
        assert data_service.list_bookings() == []
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE

    def test_unknown_car(self, machine):
        with pytest.raises(CarNotFoundError):
            machine.create(make_draft(car_id="car-404"))

    def test_overlapping_booking_rejected(self, machine, data_service):
        machine.create(make_draft())

        overlapping = make_draft(
            customer_id="cust-2",
            start_date=TODAY + timedelta(days=12),
            end_date=TODAY + timedelta(days=15),
        )
        with pytest.raises(BookingValidationError) as exc_info:
            machine.create(overlapping)

        assert exc_info.value.errors == ["Car is not available for the selected dates"]
        assert len(data_service.list_bookings()) == 1

    def test_back_to_back_bookings_allowed(self, machine):
        first = machine.create(make_draft())
        second = machine.create(make_draft(
            customer_id="cust-2", start_date=first.end_date, end_date=first.end_date + timedelta(days=2)
        ))

        assert second.status == BookingStatus.CONFIRMED

    def test_car_in_maintenance_rejected(self, machine, data_service):
        data_service.update_car_status("car-1", CarStatus.MAINTENANCE)

        with pytest.raises(BookingValidationError):
            machine.create(make_draft())

    def test_availability_check_failure_refuses_booking(self, cars, clock):
        data = MagicMock()
        data.get_car.return_value = cars[0]
        data.check_availability.side_effect = RuntimeError("timeout")
        machine = BookingStateMachine(data, clock=clock)

        with pytest.raises(BookingValidationError) as exc_info:
            machine.create(make_draft())

        assert exc_info.value.errors == [AVAILABILITY_UNVERIFIED_MESSAGE]
        data.create_booking.assert_not_called()

    def test_data_service_error_rolls_back_booking(self, machine, data_service, monkeypatch):
        """Test an unexpected data service error surfaces as a rental error."""
        def fail(booking):
            raise RuntimeError("db down")

        monkeypatch.setattr(data_service, "create_booking", fail)

        with pytest.raises(PersistenceError):
            machine.create(make_draft())

        assert data_service.list_bookings() == []
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE

    def test_returned_total_matches_stored_total(self, machine, data_service):
        """Test a total with sub-pesewa precision is rounded before it is stored."""
        data_service.add_car(CarModel(
            car_id="car-3", make="Kia", model="Picanto",
            plate_number="GR-9012-23", daily_rate=Decimal("33.33"),
        ))

        booking = machine.create(make_draft(
            car_id="car-3", end_date=TODAY + timedelta(days=11), insurance_coverage=True
        ))

        assert booking.total_amount == Decimal("38.33")
        assert data_service.get_booking(booking.booking_id).total_amount == booking.total_amount

    def test_car_update_failure_rolls_back_booking(self, machine, data_service, monkeypatch):
        """Test a failed car status update leaves no booking behind."""
        monkeypatch.setattr(data_service, "update_car_status", lambda car_id, status: False)

        with pytest.raises(InconsistencyError):
            machine.create(make_draft())

        assert data_service.list_bookings() == []

    def test_car_update_error_rolls_back_booking(self, machine, data_service, monkeypatch):
        def broken(car_id, status):
            raise RuntimeError("fleet service unavailable")

        monkeypatch.setattr(data_service, "update_car_status", broken)

        with pytest.raises(InconsistencyError):
            machine.create(make_draft())

        assert data_service.list_bookings() == []

    def test_self_drive_keeps_licence_and_drops_driver(self, machine):
        booking = machine.create(make_draft(
            self_drive=True,
            driver_id="drv-1",
            driver_license_id="GHA-123456",
            driver_license_class="B",
            driver_license_issue_date=date(2015, 1, 1),
            driver_license_expiry_date=date(2030, 1, 1),
        ))

        assert booking.driver_id is None
        assert booking.driver_license_id == "GHA-123456"

    def test_pay_in_slip_amount_defaults_to_total(self, machine, data_service):
        booking = machine.create(make_draft(
            payment_method=PaymentMethod.PAY_IN_SLIP, pay_in_slip=slip_details()
        ))

        stored = data_service.get_booking(booking.booking_id)
        assert stored.payment_status == PaymentStatus.PENDING
        assert stored.pay_in_slip.amount == Decimal("540")
        assert stored.pay_in_slip.slip_number == "SLP-1001"
        assert stored.mobile_money is None

    def test_quote_writes_nothing(self, machine, data_service):
        assert machine.quote(make_draft()) == Decimal("540")
        assert data_service.list_bookings() == []
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE


class TestConfirm:
    """Test confirming pending bookings."""

    def test_confirm_pending(self, machine, data_service):
        booking = machine.create(make_draft())
        data_service.update_booking_status(booking.booking_id, BookingStatus.PENDING)
        data_service.update_car_status("car-1", CarStatus.AVAILABLE)

        confirmed = machine.confirm(booking.booking_id)

        assert confirmed.status == BookingStatus.CONFIRMED
        assert data_service.get_car("car-1").status == CarStatus.RENTED

    def test_confirm_confirmed_is_illegal(self, machine):
        booking = machine.create(make_draft())

        with pytest.raises(IllegalTransitionError):
            machine.confirm(booking.booking_id)

    def test_unknown_booking(self, machine):
        with pytest.raises(BookingNotFoundError):
            machine.confirm("missing")


class TestCancel:
    """Test cancellation and refunds."""

    def test_policy_refund(self, machine, data_service):
        booking = machine.create(make_draft())

        cancelled = machine.cancel(booking.booking_id, "Customer travel plans changed")

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.refund_amount == Decimal("486")
        assert cancelled.refund_reason == "Customer travel plans changed"
        assert cancelled.cancelled_at == NOW
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE

    def test_reason_required(self, machine, data_service):
        booking = machine.create(make_draft())

        with pytest.raises(BookingValidationError):
            machine.cancel(booking.booking_id, "   ")

        assert data_service.get_booking(booking.booking_id).status == BookingStatus.CONFIRMED

    def test_override_within_amount_paid(self, machine, data_service):
        booking = machine.create(
            make_draft(), payment_status=PaymentStatus.PAID, amount_paid=Decimal("540")
        )

        cancelled = machine.cancel(booking.booking_id, "Goodwill", refund_amount=Decimal("540"))

        assert cancelled.refund_amount == Decimal("540")
        assert cancelled.payment_status == PaymentStatus.REFUNDED

    def test_override_above_amount_paid_rejected(self, machine, data_service):
        booking = machine.create(make_draft())

        with pytest.raises(BookingValidationError):
            machine.cancel(booking.booking_id, "Goodwill", refund_amount=Decimal("100"))

        assert data_service.get_booking(booking.booking_id).status == BookingStatus.CONFIRMED

    def test_unpaid_booking_keeps_payment_status(self, machine):
        booking = machine.create(make_draft())

        cancelled = machine.cancel(booking.booking_id, "No longer needed")

        assert cancelled.payment_status == PaymentStatus.PENDING

    def test_paid_booking_without_refund_stays_paid(self, machine):
        booking = machine.create(
            make_draft(start_date=TODAY, end_date=TODAY + timedelta(days=2)),
            payment_status=PaymentStatus.PAID,
            amount_paid=Decimal("360"),
        )

        cancelled = machine.cancel(booking.booking_id, "Changed mind")

        assert cancelled.refund_amount == Decimal("0")
        assert cancelled.payment_status == PaymentStatus.PAID

    def test_cancelled_is_terminal(self, machine):
        booking = machine.create(make_draft())
        machine.cancel(booking.booking_id, "No longer needed")

        with pytest.raises(IllegalTransitionError):
            machine.cancel(booking.booking_id, "Again")
        with pytest.raises(IllegalTransitionError):
            machine.mark_returned(booking.booking_id, NOW)

    def test_car_stays_rented_for_current_booking(self, machine, data_service):
        """Test cancelling a future booking keeps a car out on a current rental."""
        current = machine.create(make_draft(start_date=TODAY, end_date=TODAY + timedelta(days=3)))
        future = machine.create(make_draft(customer_id="cust-2"))

        machine.cancel(future.booking_id, "No longer needed")

        assert data_service.get_car("car-1").status == CarStatus.RENTED
        assert data_service.get_booking(current.booking_id).status == BookingStatus.CONFIRMED

    def test_car_stays_rented_for_later_booking(self, machine, data_service):
        """Test cancelling one booking keeps the car rented for a confirmed booking ahead."""
        first = machine.create(make_draft())
        later = machine.create(make_draft(
            customer_id="cust-2",
            start_date=TODAY + timedelta(days=20),
            end_date=TODAY + timedelta(days=22),
        ))

        machine.cancel(first.booking_id, "No longer needed")

        assert data_service.get_car("car-1").status == CarStatus.RENTED
        assert data_service.get_booking(later.booking_id).status == BookingStatus.CONFIRMED

    def test_timezone_aware_cancellation_time(self, machine):
        booking = machine.create(make_draft())

        cancelled = machine.cancel(
            booking.booking_id, "Customer request",
            cancelled_at=datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc),
        )

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.refund_amount == Decimal("486")

    def test_car_in_maintenance_not_released(self, machine, data_service):
        booking = machine.create(make_draft())
        data_service.update_car_status("car-1", CarStatus.MAINTENANCE)

        machine.cancel(booking.booking_id, "Car damaged")

        assert data_service.get_car("car-1").status == CarStatus.MAINTENANCE

    def test_car_release_failure_rolls_back_cancellation(self, machine, data_service, monkeypatch):
        booking = machine.create(make_draft())
        monkeypatch.setattr(data_service, "update_car_status", lambda car_id, status: False)

        with pytest.raises(InconsistencyError):
            machine.cancel(booking.booking_id, "No longer needed")

        stored = data_service.get_booking(booking.booking_id)
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.refund_amount is None


class TestMarkReturned:
    """Test return processing and late penalties."""

    def test_on_time_return(self, machine, data_service, notification_service):
        booking = machine.create(make_draft())

        returned = machine.mark_returned(booking.booking_id, end_of(booking, 8, 45))

        assert returned.status == BookingStatus.COMPLETED
        assert returned.penalty_amount == Decimal("0")
        assert returned.penalty_paid is False
        assert returned.receipt_number is None
        assert returned.completed_at == NOW
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE
        notification_service.send_receipt_email.assert_not_called()

    def test_late_return_requires_payment(self, machine, data_service):
        booking = machine.create(make_draft())

        with pytest.raises(IllegalTransitionError) as exc_info:
            machine.mark_returned(booking.booking_id, end_of(booking, 9, 1))

        assert "confirm penalty payment" in str(exc_info.value)
        assert data_service.get_booking(booking.booking_id).status == BookingStatus.CONFIRMED
        assert data_service.get_car("car-1").status == CarStatus.RENTED

    def test_late_return_requires_penalty_method(self, machine):
        booking = machine.create(make_draft())

        with pytest.raises(IllegalTransitionError):
            machine.mark_returned(
                booking.booking_id, end_of(booking, 10), penalty_paid=True,
                penalty_payment_method=PaymentMethod.PAY_IN_SLIP,
            )

    def test_paid_late_return(self, machine, data_service, notification_service):
        booking = machine.create(make_draft())

        returned = machine.mark_returned(
            booking.booking_id,
            end_of(booking, 10, days_after=1),
            penalty_paid=True,
            penalty_payment_method=PaymentMethod.CASH,
        )

        # 25 hours late: 2 days x 180 + 10%
        assert returned.status == BookingStatus.COMPLETED
        assert returned.penalty_amount == Decimal("396")
        assert returned.penalty_paid is True
        assert returned.penalty_payment_method == PaymentMethod.CASH
        assert returned.amount_paid == Decimal("396")
        assert returned.receipt_number == f"RCPT-{str(int(NOW.timestamp() * 1000))[-8:]}"
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE
        notification_service.send_receipt_email.assert_called_once_with(booking.booking_id)
        notification_service.send_receipt_sms.assert_called_once_with(booking.booking_id)

    def test_staff_receipt_number_kept(self, machine):
        booking = machine.create(make_draft())

        returned = machine.mark_returned(
            booking.booking_id, end_of(booking, 12), penalty_paid=True,
            penalty_payment_method="mobile_money", receipt_number="RCPT-MANUAL1",
        )

        assert returned.receipt_number == "RCPT-MANUAL1"
        assert returned.penalty_payment_method == PaymentMethod.MOBILE_MONEY

    def test_precomputed_zero_penalty(self, machine):
        booking = machine.create(make_draft())

        returned = machine.mark_returned(
            booking.booking_id, end_of(booking, 11),
            penalty=PenaltyCalculation(is_late=True, late_hours=2, late_days=1),
        )

        assert returned.status == BookingStatus.COMPLETED
        assert returned.penalty_amount == Decimal("0")

    def test_pending_cannot_be_returned(self, machine, data_service):
        booking = machine.create(make_draft())
        data_service.update_booking_status(booking.booking_id, BookingStatus.PENDING)

        with pytest.raises(IllegalTransitionError):
            machine.mark_returned(booking.booking_id, end_of(booking, 8))

    def test_completed_is_terminal(self, machine):
        booking = machine.create(make_draft())
        machine.mark_returned(booking.booking_id, end_of(booking, 8))

        with pytest.raises(IllegalTransitionError):
            machine.cancel(booking.booking_id, "Too late")


class TestNoShow:
    """Test no-show handling."""

    def test_mark_no_show(self, machine, data_service):
        booking = machine.create(make_draft())

        no_show = machine.mark_no_show(booking.booking_id)

        assert no_show.status == BookingStatus.NO_SHOW
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE

        with pytest.raises(IllegalTransitionError):
            machine.confirm(booking.booking_id)


class TestEndToEnd:
    """Test a booking from creation to cancellation."""

    def test_create_then_cancel_ten_days_out(self, machine, data_service):
        """Test 180/day for 3 days is 540 and cancelling 10 days out refunds 486."""
        booking = machine.create(make_draft(has_driver=False, insurance_coverage=False))
        assert booking.total_amount == Decimal("540")
        assert data_service.get_car("car-1").status == CarStatus.RENTED

        cancelled = machine.cancel(
            booking.booking_id,
            "Customer request",
            cancelled_at=datetime.combine(booking.start_date - timedelta(days=10), datetime.min.time()),
        )

        assert cancelled.refund_amount == Decimal("486")
        assert data_service.get_car("car-1").status == CarStatus.AVAILABLE

    def test_mobile_money_booking_records_transaction(self, machine):
        booking = machine.create(
            make_draft(payment_method=PaymentMethod.MOBILE_MONEY, mobile_money=momo_details()),
            payment_status=PaymentStatus.PAID,
            amount_paid=Decimal("540"),
            payment_reference="BOOK_abc123",
        )

        assert booking.payment_reference == "BOOK_abc123"
        assert booking.mobile_money.transaction_id == "BOOK_abc123"
        assert booking.amount_paid == Decimal("540")
