"""
Pytest tests for Pydantic models.
Run with: pytest tests/test_models.py -v
"""

import pytest
from carrental.models import *
from datetime import date, datetime
from decimal import Decimal
from pydantic import ValidationError


def booking(**overrides) -> BookingModel:
    values = dict(
        booking_id="bk-1",
        customer_id="cust-1",
        car_id="car-1",
        daily_rate=Decimal("180"),
        start_date=date(2025, 4, 10),
        end_date=date(2025, 4, 13),
        total_amount=Decimal("540"),
    )
    values.update(overrides)
    return BookingModel(**values)


class TestBookingModel:
    """Test booking record invariants."""

    def test_defaults(self):
        """Test a new booking starts confirmed with nothing paid."""
        model = booking()

        assert model.status == BookingStatus.CONFIRMED
        assert model.payment_status == PaymentStatus.PENDING
        assert model.amount_paid == Decimal("0")
        assert model.penalty_paid is False
        assert model.is_terminal is False

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            booking(end_date=date(2025, 4, 10))

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationError):
            booking(total_amount=Decimal("-1"))

    def test_cash_with_slip_rejected(self):
        with pytest.raises(ValidationError):
            booking(pay_in_slip=PayInSlipDetails(bank_name="GCB Bank"))

    def test_slip_method_requires_slip(self):
        with pytest.raises(ValidationError):
            booking(payment_method=PaymentMethod.PAY_IN_SLIP)

    def test_mobile_money_with_slip_rejected(self):
        with pytest.raises(ValidationError):
            booking(
                payment_method=PaymentMethod.MOBILE_MONEY,
                mobile_money=MobileMoneyDetails(phone_number="0241234567"),
                pay_in_slip=PayInSlipDetails(bank_name="GCB Bank"),
            )

    def test_mobile_money_details(self):
        model = booking(
            payment_method=PaymentMethod.MOBILE_MONEY,
            mobile_money=MobileMoneyDetails(phone_number="0241234567"),
        )
        assert model.mobile_money.provider == "MTN"

    @pytest.mark.parametrize("status,terminal", [
        (BookingStatus.PENDING, False),
        (BookingStatus.CONFIRMED, False),
        (BookingStatus.COMPLETED, True),
        (BookingStatus.CANCELLED, True),
        (BookingStatus.NO_SHOW, True),
    ])
    def test_terminal_statuses(self, status, terminal):
        assert booking(status=status).is_terminal is terminal


class TestBookingDraft:
    """Test the immutable booking draft."""

    def test_draft_is_frozen(self):
        draft = BookingDraft(customer_id="cust-1", car_id="car-1")

        with pytest.raises(ValidationError):
            draft.car_id = "car-2"

    def test_empty_draft_allowed(self):
        """Test a half-filled form can still be built for validation."""
        draft = BookingDraft()

        assert draft.start_date is None
        assert draft.payment_method == PaymentMethod.CASH


class TestFinancialModels:
    """Test derived financial models."""

    def test_penalty_defaults_to_on_time(self):
        penalty = PenaltyCalculation()

        assert penalty.is_late is False
        assert penalty.total_amount == Decimal("0")

    def test_gateway_outcome(self):
        assert GatewayOutcome(status=GatewayStatus.SUCCESS, reference="PSK_1").succeeded is True
        assert GatewayOutcome(status=GatewayStatus.CANCELLED, reference="PSK_1").succeeded is False

    def test_checkout_result_tags(self):
        ok = CheckoutResult.succeeded(booking(payment_reference="BOOK_1"))
        failed = CheckoutResult.failed("settlement", ["Payment was cancelled"], "BOOK_2")

        assert ok.success is True
        assert ok.payment_reference == "BOOK_1"
        assert failed.success is False
        assert failed.error_type == "settlement"
        assert failed.booking is None

    def test_refund_percentage_bounds(self):
        with pytest.raises(ValidationError):
            RefundDecision(refund_amount=Decimal("0"), refund_percentage=120, days_until_start=10, reason="")


class TestCarModel:
    """Test the fleet car model."""

    def test_display_name(self):
        car = CarModel(car_id="car-1", make="Toyota", model="Corolla", daily_rate=Decimal("180"))

        assert car.display_name == "Toyota Corolla"
        assert car.status == CarStatus.AVAILABLE

    def test_display_name_falls_back_to_id(self):
        assert CarModel(car_id="car-1", daily_rate=Decimal("180")).display_name == "car-1"

    def test_status_from_string(self):
        car = CarModel(car_id="car-1", daily_rate=Decimal("180"), status="maintenance")
        assert car.status == CarStatus.MAINTENANCE
