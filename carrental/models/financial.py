"""
Derived financial models for the car rental booking core.

These values are computed on the fly by the calculators and the settlement
flow; they become part of a booking only once the related transition is
confirmed.
"""

from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from .booking import BookingModel
from .enums import GatewayStatus


class PenaltyCalculation(BaseModel):
    """
    Late-return penalty for a single return.

    Re-derivable from the expected end date, the actual return time and the
    daily rate alone.
    """
    model_config = ConfigDict(frozen=True)

    is_late: bool = False
    late_hours: int = Field(default=0, ge=0, description="Whole hours past the cutoff, rounded up")
    late_days: int = Field(default=0, ge=0, description="Days charged as penalty")
    penalty_amount: Decimal = Field(default=Decimal("0"), ge=0)
    late_fee: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    explanation: str = ""


class RefundDecision(BaseModel):
    """Refund owed on cancellation under the lead-time policy."""
    model_config = ConfigDict(frozen=True)

    refund_amount: Decimal = Field(..., ge=0)
    refund_percentage: int = Field(..., ge=0, le=100)
    days_until_start: int
    reason: str


class ValidationResult(BaseModel):
    """Every rule a booking draft violates."""

    valid: bool
    errors: List[str] = Field(default_factory=list)


class GatewayOutcome(BaseModel):
    """Result of an awaited payment gateway transaction."""

    status: GatewayStatus
    reference: str = Field(..., description="Gateway transaction reference")
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == GatewayStatus.SUCCESS


class CheckoutResult(BaseModel):
    """
    Tagged result of a booking checkout.

    Either carries the created booking or the errors that stopped it,
    tagged with the kind of failure so the caller can choose its messaging.
    """

    success: bool
    booking: Optional[BookingModel] = None
    errors: List[str] = Field(default_factory=list)
    error_type: Optional[str] = None
    payment_reference: Optional[str] = None

    @classmethod
    def succeeded(cls, booking: BookingModel) -> "CheckoutResult":
        return cls(success=True, booking=booking, payment_reference=booking.payment_reference)

    @classmethod
    def failed(
        cls,
        error_type: str,
        errors: List[str],
        payment_reference: Optional[str] = None
    ) -> "CheckoutResult":
        return cls(
            success=False,
            errors=errors,
            error_type=error_type,
            payment_reference=payment_reference,
        )
