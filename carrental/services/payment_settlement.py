"""
Booking checkout and payment settlement.

Cash and pay-in-slip bookings are created straight away with payment
pending; the slip is checked by staff later. Mobile money bookings are
priced first and the amount collected through the payment gateway, and the
booking is created only after the gateway reports success. A cancelled or
failed payment leaves nothing behind.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, Optional

from ..exceptions import RentalError, SettlementFailure
from ..models.booking import BookingDraft
from ..models.enums import GatewayStatus, PaymentMethod, PaymentStatus, PaymentTransactionStatus
from ..models.financial import CheckoutResult
from ..utils.config import RentalConfig
from ..utils.timeutils import to_minor_units
from .interfaces import PaymentGateway
from .payment_tracker import PaymentTracker
from .state_machine import BookingStateMachine

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "BOOK_"


def new_payment_reference() -> str:
    return f"{REFERENCE_PREFIX}{uuid.uuid4().hex}"


class PaymentSettlement:
    """
    Runs a booking draft through payment and into a booking.

    Every failure is returned as a tagged CheckoutResult; the caller
    decides how to present it.
    """

    def __init__(
        self,
        state_machine: BookingStateMachine,
        gateway: Optional[PaymentGateway] = None,
        tracker: Optional[PaymentTracker] = None,
        currency: str = "GHS",
        minor_units: int = 100
    ):
        self.state_machine = state_machine
        self.gateway = gateway
        self.tracker = tracker or PaymentTracker()
        self.currency = currency
        self.minor_units = minor_units

    @classmethod
    def from_config(
        cls,
        config: RentalConfig,
        state_machine: BookingStateMachine,
        gateway: Optional[PaymentGateway] = None,
        tracker: Optional[PaymentTracker] = None
    ) -> "PaymentSettlement":
        return cls(
            state_machine,
            gateway=gateway,
            tracker=tracker,
            currency=config.currency,
            minor_units=config.currency_minor_units,
        )

    async def checkout(
        self,
        draft: BookingDraft,
        customer_email: Optional[str] = None,
        today: Optional[date] = None
    ) -> CheckoutResult:
        """
        Settle payment for a draft and create its booking.

        Args:
            draft: Booking draft from the booking form
            customer_email: E-mail passed to the gateway for its receipt
            today: Calendar date the draft is validated against

        Returns:
            CheckoutResult: The created booking, or the tagged failure
        """
        reference: Optional[str] = None
        try:
            if draft.payment_method == PaymentMethod.MOBILE_MONEY:
                reference = new_payment_reference()
                booking = await self._checkout_mobile_money(draft, reference, customer_email, today)
            else:
                booking = self.state_machine.create(draft, today=today)
            return CheckoutResult.succeeded(booking)

        except RentalError as e:
            logger.info(f"Checkout failed ({e.error_type}): {e}")
            if isinstance(e, SettlementFailure) and e.reference:
                reference = e.reference
            return CheckoutResult.failed(e.error_type, e.messages, reference)

    async def _checkout_mobile_money(
        self,
        draft: BookingDraft,
        reference: str,
        customer_email: Optional[str],
        today: Optional[date]
    ):
        if self.gateway is None:
            raise SettlementFailure("Mobile money payments are not available", reference)

        total = self.state_machine.quote(draft, today)
        amount_minor = to_minor_units(total, self.minor_units)
        metadata = self._metadata(draft, customer_email)

        await self.tracker.record(
            reference,
            PaymentTransactionStatus.INITIATED,
            amount=str(total),
            currency=self.currency,
            customer_id=draft.customer_id,
            car_id=draft.car_id,
        )

        try:
            outcome = await self.gateway.open_transaction(
                amount_minor, self.currency, reference, metadata
            )
        except Exception as e:
            logger.error(f"Payment gateway error for {reference}: {e}")
            await self.tracker.record(reference, PaymentTransactionStatus.FAILED, error=str(e))
            raise SettlementFailure(f"Payment failed: {e}", reference) from e

        if not outcome.succeeded:
            status = (
                PaymentTransactionStatus.CANCELLED
                if outcome.status == GatewayStatus.CANCELLED
                else PaymentTransactionStatus.FAILED
            )
            await self.tracker.record(reference, status, message=outcome.message)
            message = (
                "Payment was cancelled"
                if outcome.status == GatewayStatus.CANCELLED
                else f"Payment failed: {outcome.message or 'unknown error'}"
            )
            raise SettlementFailure(message, outcome.reference or reference)

        reference = outcome.reference or reference
        if not await self.tracker.claim(reference):
            raise SettlementFailure(
                "This payment has already been applied to a booking", reference
            )

        await self.tracker.record(reference, PaymentTransactionStatus.PAID, amount=str(total))

        try:
            booking = self.state_machine.create(
                draft,
                payment_status=PaymentStatus.PAID,
                amount_paid=total,
                payment_reference=reference,
                today=today,
            )
        except Exception as e:
            logger.error(
                f"Payment {reference} for {total} {self.currency} succeeded but the booking "
                f"could not be created; refund or rebook manually: {e}"
            )
            await self.tracker.record(reference, PaymentTransactionStatus.UNFULFILLED, error=str(e))
            raise

        await self.tracker.record(
            reference, PaymentTransactionStatus.FULFILLED, booking_id=booking.booking_id
        )
        logger.info(f"Mobile money payment {reference} settled booking {booking.booking_id}")
        return booking

    @staticmethod
    def _metadata(draft: BookingDraft, customer_email: Optional[str]) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "customer_id": draft.customer_id,
            "car_id": draft.car_id,
            "start_date": draft.start_date.isoformat(),
            "end_date": draft.end_date.isoformat(),
            "phone_number": draft.mobile_money.phone_number,
            "provider": draft.mobile_money.provider,
        }
        if customer_email:
            metadata["email"] = customer_email
        return metadata
