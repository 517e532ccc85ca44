"""
Booking lifecycle state machine.

Owns every booking status transition and the car status change paired with
it. A transition and its car update are written in one unit of work on the
data service, so a failed car update rolls the booking write back too.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled | no-show

completed, cancelled and no-show are terminal.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Optional

from ..exceptions import (
    BookingNotFoundError,
    BookingValidationError,
    CarNotFoundError,
    IllegalTransitionError,
    InconsistencyError,
    PersistenceError,
    RentalError,
)
from ..models.booking import BookingDraft, BookingModel, PayInSlipDetails
from ..models.car import CarModel
from ..models.enums import (
    BookingStatus,
    CarStatus,
    PaymentMethod,
    PaymentStatus,
    PENALTY_PAYMENT_METHODS,
)
from ..models.financial import PenaltyCalculation
from ..utils.config import RentalConfig
from ..utils.timeutils import Amount, round_money, to_decimal
from .booking_validator import BookingValidator
from .interfaces import BookingDataService
from .notifications import NotificationDispatcher
from .pricing import PricingCalculator
from .refund_policy import RefundPolicyEngine
from .return_penalty import ReturnPenaltyCalculator

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

UNBOOKABLE_CAR_STATUSES = frozenset({CarStatus.MAINTENANCE, CarStatus.RETIRED})

CAR_UNAVAILABLE_MESSAGE = "Car is not available for the selected dates"
AVAILABILITY_UNVERIFIED_MESSAGE = "Unable to verify availability. Please try again."


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class BookingStateMachine:
    """
    Creates bookings and moves them through their lifecycle.

    Calculators, the validator and the notification dispatcher are injected
    so the machine can be driven with fixed policies and a fixed clock.
    """

    def __init__(
        self,
        data_service: BookingDataService,
        pricing: Optional[PricingCalculator] = None,
        validator: Optional[BookingValidator] = None,
        refund_policy: Optional[RefundPolicyEngine] = None,
        penalty_calculator: Optional[ReturnPenaltyCalculator] = None,
        notifier: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Optional[Callable[[], str]] = None
    ):
        self.data = data_service
        self.clock = clock
        self.pricing = pricing or PricingCalculator()
        self.validator = validator or BookingValidator(clock=clock)
        self.refund_policy = refund_policy or RefundPolicyEngine()
        self.penalty_calculator = penalty_calculator or ReturnPenaltyCalculator()
        self.notifier = notifier or NotificationDispatcher()
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    @classmethod
    def from_config(
        cls,
        config: RentalConfig,
        data_service: BookingDataService,
        notifier: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = datetime.now
    ) -> "BookingStateMachine":
        return cls(
            data_service,
            pricing=PricingCalculator.from_config(config),
            validator=BookingValidator(clock=clock),
            refund_policy=RefundPolicyEngine(minor_units=config.currency_minor_units),
            penalty_calculator=ReturnPenaltyCalculator.from_config(config),
            notifier=notifier,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def quote(self, draft: BookingDraft, today: Optional[date] = None) -> Decimal:
        """
        Validate a draft, check the car is free and price it.

        Nothing is written. Used by checkout to learn the amount to charge
        before a mobile money payment is opened.

        Raises:
            BookingValidationError: Draft invalid or car unavailable
            CarNotFoundError: Car does not exist
        """
        car = self._bookable_car(draft, today)
        return self._price(draft, car)

    def create(
        self,
        draft: BookingDraft,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        amount_paid: Amount = Decimal("0"),
        payment_reference: Optional[str] = None,
        today: Optional[date] = None
    ) -> BookingModel:
        """
        Create a confirmed booking and mark its car rented.

        Args:
            draft: Booking draft from the booking form
            payment_status: Payment state at creation
            amount_paid: Amount already collected
            payment_reference: Gateway reference for mobile money payments
            today: Calendar date the draft is validated against

        Returns:
            BookingModel: The persisted booking

        Raises:
            BookingValidationError: Draft invalid or car unavailable
            CarNotFoundError: Car does not exist
            InconsistencyError: Car could not be marked rented; nothing was kept
            PersistenceError: The data service failed; nothing was kept
        """
        car = self._bookable_car(draft, today)
        total = self._price(draft, car)
        booking = self._build_booking(
            draft, car, total, payment_status, to_decimal(amount_paid), payment_reference
        )

        try:
            with self.data.unit_of_work():
                created = self.data.create_booking(booking)
                self._set_car_status(car.car_id, CarStatus.RENTED)
        except InconsistencyError:
            logger.error(f"Booking for car {car.car_id} rolled back: car could not be marked rented")
            raise
        except RentalError:
            raise
        except Exception as e:
            logger.error(f"Booking for car {car.car_id} rolled back: {e}")
            raise PersistenceError(f"Booking for car {car.car_id} could not be saved: {e}") from e

        logger.info(
            f"Booking {created.booking_id} created for customer {created.customer_id}: "
            f"car {created.car_id}, {created.start_date} to {created.end_date}, "
            f"total {created.total_amount} ({created.payment_method.value}, "
            f"{created.payment_status.value})"
        )
        self.notifier.booking_confirmed(created)
        return created

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def confirm(self, booking_id: str) -> BookingModel:
        """Confirm a pending booking and mark its car rented."""
        booking = self._load(booking_id)
        self._require_transition(booking, BookingStatus.CONFIRMED)

        with self.data.unit_of_work():
            confirmed = self.data.update_booking_status(booking_id, BookingStatus.CONFIRMED)
            self._set_car_status(booking.car_id, CarStatus.RENTED)

        logger.info(f"Booking {booking_id} confirmed")
        return confirmed

    def cancel(
        self,
        booking_id: str,
        reason: str,
        refund_amount: Optional[Amount] = None,
        cancelled_at: Optional[datetime] = None
    ) -> BookingModel:
        """
        Cancel a pending or confirmed booking.

        Args:
            booking_id: Booking to cancel
            reason: Why the booking is cancelled; required
            refund_amount: Staff override for the refund. When omitted the
                lead-time refund policy decides.
            cancelled_at: When the cancellation happens, defaults to now

        Returns:
            BookingModel: The cancelled booking

        Raises:
            IllegalTransitionError: Booking already terminal
            BookingValidationError: Missing reason or override out of range
        """
        booking = self._load(booking_id)
        self._require_transition(booking, BookingStatus.CANCELLED)

        reason = (reason or "").strip()
        if not reason:
            raise BookingValidationError(["Please provide a reason for cancellation"])

        cancelled_at = cancelled_at or self.clock()

        if refund_amount is None:
            decision = self.refund_policy.decide(
                booking.total_amount, cancelled_at, booking.start_date
            )
            refund = decision.refund_amount
            logger.info(f"Booking {booking_id}: {decision.reason}")
        else:
            refund = round_money(refund_amount, self.refund_policy.minor_units)
            if refund < 0 or refund > booking.amount_paid:
                raise BookingValidationError(
                    [f"Refund amount must be between 0 and {booking.amount_paid}"]
                )

        payment_status = booking.payment_status
        if payment_status == PaymentStatus.PAID and refund > 0:
            payment_status = PaymentStatus.REFUNDED

        with self.data.unit_of_work():
            cancelled = self.data.cancel_booking(
                booking_id, refund, reason, cancelled_at, payment_status
            )
            self._release_car(booking, cancelled_at.date())

        logger.info(f"Booking {booking_id} cancelled with refund {refund}: {reason}")
        return cancelled

    def mark_returned(
        self,
        booking_id: str,
        actual_return_time: datetime,
        penalty_paid: bool = False,
        penalty_payment_method: Optional[PaymentMethod] = None,
        receipt_number: Optional[str] = None,
        penalty: Optional[PenaltyCalculation] = None
    ) -> BookingModel:
        """
        Complete a confirmed booking when its car comes back.

        A late return with a penalty due is refused until the penalty has
        been paid by cash or mobile money.

        Args:
            booking_id: Booking being returned
            actual_return_time: When the car came back
            penalty_paid: Staff confirmed the penalty was collected
            penalty_payment_method: How the penalty was collected
            receipt_number: Receipt issued for the penalty, generated if omitted
            penalty: Precomputed penalty; computed from the booking if omitted

        Returns:
            BookingModel: The completed booking

        Raises:
            IllegalTransitionError: Booking not confirmed or penalty unpaid
        """
        booking = self._load(booking_id)
        self._require_transition(booking, BookingStatus.COMPLETED)

        if penalty is None:
            penalty = self.penalty_calculator.compute_penalty(
                booking.end_date, actual_return_time, booking.daily_rate
            )

        penalty_due = penalty.is_late and penalty.total_amount > 0
        amount_paid = booking.amount_paid

        if penalty_due:
            if not penalty_paid:
                raise IllegalTransitionError(
                    "Please confirm penalty payment before marking as returned."
                )
            if penalty_payment_method is not None:
                penalty_payment_method = PaymentMethod(penalty_payment_method)
            if penalty_payment_method not in PENALTY_PAYMENT_METHODS:
                raise IllegalTransitionError("Penalty must be paid by cash or mobile money")
            receipt_number = receipt_number or self._new_receipt_number()
            amount_paid += penalty.total_amount
        else:
            penalty_paid = False
            penalty_payment_method = None

        with self.data.unit_of_work():
            returned = self.data.mark_returned(
                booking_id,
                actual_return_time,
                penalty.total_amount,
                penalty_paid,
                penalty_payment_method,
                receipt_number,
                self.clock(),
                amount_paid,
            )
            self._set_car_status(booking.car_id, CarStatus.AVAILABLE)

        if penalty_due:
            logger.info(
                f"Booking {booking_id} returned late: penalty {penalty.total_amount} paid by "
                f"{penalty_payment_method.value}, receipt {receipt_number}"
            )
            self.notifier.receipt(booking_id)
        else:
            logger.info(f"Booking {booking_id} returned on time")

        return returned

    def mark_no_show(self, booking_id: str) -> BookingModel:
        """Close a confirmed booking whose customer never collected the car."""
        booking = self._load(booking_id)
        self._require_transition(booking, BookingStatus.NO_SHOW)

        with self.data.unit_of_work():
            no_show = self.data.update_booking_status(booking_id, BookingStatus.NO_SHOW)
            self._release_car(booking, self.clock().date())

        logger.info(f"Booking {booking_id} marked as no-show")
        return no_show

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, booking_id: str) -> BookingModel:
        booking = self.data.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    @staticmethod
    def _require_transition(booking: BookingModel, target: BookingStatus) -> None:
        if not can_transition(booking.status, target):
            raise IllegalTransitionError(
                f"Cannot move booking {booking.booking_id} from "
                f"{booking.status.value} to {target.value}"
            )

    def _bookable_car(self, draft: BookingDraft, today: Optional[date]) -> CarModel:
        result = self.validator.validate(draft, today)
        if not result.valid:
            raise BookingValidationError(result.errors)

        car = self.data.get_car(draft.car_id)
        if car is None:
            raise CarNotFoundError(f"Car {draft.car_id} not found")

        if car.status in UNBOOKABLE_CAR_STATUSES:
            raise BookingValidationError([f"{car.display_name} is currently {car.status.value}"])

        try:
            available = self.data.check_availability(car.car_id, draft.start_date, draft.end_date)
        except Exception as e:
            logger.warning(f"Availability check for car {car.car_id} failed, refusing booking: {e}")
            raise BookingValidationError([AVAILABILITY_UNVERIFIED_MESSAGE]) from e

        if not available:
            raise BookingValidationError([CAR_UNAVAILABLE_MESSAGE])

        return car

    def _price(self, draft: BookingDraft, car: CarModel) -> Decimal:
        return self.pricing.compute_total(
            car.daily_rate,
            draft.start_date,
            draft.end_date,
            has_driver=draft.has_driver,
            insurance_coverage=draft.insurance_coverage,
        )

    def _build_booking(
        self,
        draft: BookingDraft,
        car: CarModel,
        total: Decimal,
        payment_status: PaymentStatus,
        amount_paid: Decimal,
        payment_reference: Optional[str]
    ) -> BookingModel:
        pay_in_slip = None
        mobile_money = None

        if draft.payment_method == PaymentMethod.PAY_IN_SLIP:
            pay_in_slip = draft.pay_in_slip or PayInSlipDetails()
            if pay_in_slip.amount is None:
                pay_in_slip = pay_in_slip.model_copy(update={"amount": total})
        elif draft.payment_method == PaymentMethod.MOBILE_MONEY:
            mobile_money = draft.mobile_money
            if payment_reference:
                mobile_money = mobile_money.model_copy(update={"transaction_id": payment_reference})

        return BookingModel(
            booking_id=self.id_factory(),
            customer_id=draft.customer_id,
            driver_id=None if draft.self_drive else draft.driver_id,
            guarantor_id=draft.guarantor_id,
            car_id=car.car_id,
            daily_rate=car.daily_rate,
            start_date=draft.start_date,
            end_date=draft.end_date,
            created_at=self.clock(),
            total_amount=total,
            amount_paid=amount_paid,
            payment_method=draft.payment_method,
            payment_status=payment_status,
            payment_reference=payment_reference,
            status=BookingStatus.CONFIRMED,
            self_drive=draft.self_drive,
            has_driver=draft.has_driver,
            insurance_coverage=draft.insurance_coverage,
            driver_license_id=draft.driver_license_id if draft.self_drive else None,
            driver_license_class=draft.driver_license_class if draft.self_drive else None,
            pickup_location=draft.pickup_location,
            dropoff_location=draft.dropoff_location,
            special_requests=draft.special_requests,
            pay_in_slip=pay_in_slip,
            mobile_money=mobile_money,
        )

    def _set_car_status(self, car_id: str, status: CarStatus) -> None:
        try:
            updated = self.data.update_car_status(car_id, status)
        except Exception as e:
            raise InconsistencyError(
                f"Car {car_id} could not be marked {status.value}: {e}"
            ) from e
        if not updated:
            raise InconsistencyError(f"Car {car_id} could not be marked {status.value}")

    def _release_car(self, booking: BookingModel, on_date: date) -> None:
        """Make the car available again unless another active booking holds it."""
        if self.data.has_other_active_booking(booking.car_id, booking.booking_id, on_date):
            logger.info(f"Car {booking.car_id} stays rented: held by another booking")
            return

        car = self.data.get_car(booking.car_id)
        if car is None or car.status != CarStatus.RENTED:
            return

        self._set_car_status(booking.car_id, CarStatus.AVAILABLE)

    def _new_receipt_number(self) -> str:
        millis = int(self.clock().timestamp() * 1000)
        return f"RCPT-{str(millis)[-8:]}"
