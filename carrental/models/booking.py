"""
Booking-related Pydantic models for the car rental booking core.

This module contains the immutable booking draft assembled from the booking
form, the payment detail sub-records, and the persisted booking record.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator

from .enums import BookingStatus, PaymentMethod, PaymentStatus, TERMINAL_BOOKING_STATUSES


class PayInSlipDetails(BaseModel):
    """
    Bank deposit slip presented as proof of payment.

    Stored with the booking and verified manually by staff later.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    bank_name: str = Field(default="", description="Bank the deposit was made at")
    branch: str = Field(default="", description="Bank branch")
    payee_name: str = Field(default="", description="Name on the slip")
    amount: Optional[Decimal] = Field(None, ge=0, description="Amount deposited")
    payment_date: Optional[date] = Field(None, description="Date of the deposit")
    reference_number: str = Field(default="", description="Bank reference number")
    slip_number: str = Field(default="", description="Pre-printed slip number")


class MobileMoneyDetails(BaseModel):
    """Mobile money wallet used to pay through the payment gateway."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    provider: str = Field(default="MTN", description="Mobile network operator")
    phone_number: str = Field(default="", description="Wallet phone number")
    transaction_id: Optional[str] = Field(None, description="Gateway reference once paid")


class BookingDraft(BaseModel):
    """
    Immutable booking request assembled from the booking form.

    Passed wholesale into validation and creation. Fields are optional so
    that a half-filled form can still be validated and every missing value
    reported at once.
    """
    model_config = ConfigDict(frozen=True)

    customer_id: str = Field(default="", description="Customer making the booking")
    car_id: str = Field(default="", description="Car being booked")
    driver_id: Optional[str] = Field(None, description="Staff driver when not self-drive")
    guarantor_id: Optional[str] = Field(None, description="Guarantor recorded for the customer")

    start_date: Optional[date] = Field(None, description="Pickup date")
    end_date: Optional[date] = Field(None, description="Return date")

    self_drive: bool = Field(default=False, description="Customer drives the car")
    has_driver: bool = Field(default=False, description="Charge the per-day driver surcharge")
    insurance_coverage: bool = Field(default=False, description="Add insurance to the total")

    driver_license_id: str = Field(default="", description="Licence number for self-drive")
    driver_license_class: str = Field(default="", description="Licence class for self-drive")
    driver_license_issue_date: Optional[date] = None
    driver_license_expiry_date: Optional[date] = None

    pickup_location: str = ""
    dropoff_location: str = ""
    special_requests: str = ""

    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    pay_in_slip: Optional[PayInSlipDetails] = None
    mobile_money: Optional[MobileMoneyDetails] = None


class BookingModel(BaseModel):
    """
    Persisted car booking.

    Holds the parties, the car and its daily rate snapshot, the rental
    period, the financial record and the lifecycle status. Only the payment
    detail sub-record matching the payment method may be present.
    """
    model_config = ConfigDict(from_attributes=True)

    booking_id: str = Field(..., description="Unique booking identifier")
    customer_id: str = Field(..., description="Customer reference")
    driver_id: Optional[str] = Field(None, description="Assigned staff driver")
    guarantor_id: Optional[str] = Field(None, description="Guarantor reference")

    car_id: str = Field(..., description="Booked car")
    daily_rate: Decimal = Field(..., ge=0, description="Daily rate at time of booking")

    start_date: date = Field(..., description="Pickup date")
    end_date: date = Field(..., description="Expected return date")
    created_at: datetime = Field(default_factory=datetime.now)
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    total_amount: Decimal = Field(..., ge=0, description="Computed rental total")
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0, description="Amount collected so far")
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    payment_reference: Optional[str] = Field(None, description="Gateway reference for mobile money")
    refund_amount: Optional[Decimal] = Field(None, ge=0)
    refund_reason: Optional[str] = None

    status: BookingStatus = Field(default=BookingStatus.CONFIRMED)

    self_drive: bool = False
    has_driver: bool = False
    insurance_coverage: bool = False
    driver_license_id: Optional[str] = None
    driver_license_class: Optional[str] = None

    pickup_location: str = ""
    dropoff_location: str = ""
    special_requests: str = ""

    pay_in_slip: Optional[PayInSlipDetails] = None
    mobile_money: Optional[MobileMoneyDetails] = None

    # Return processing
    actual_return_time: Optional[datetime] = None
    penalty_amount: Decimal = Field(default=Decimal("0"), ge=0)
    penalty_paid: bool = False
    penalty_payment_method: Optional[PaymentMethod] = None
    receipt_number: Optional[str] = None

    @model_validator(mode="after")
    def check_dates_and_payment_details(self) -> "BookingModel":
        """Enforce the date ordering and payment sub-record invariants."""
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")

        expected = {
            PaymentMethod.CASH: (False, False),
            PaymentMethod.PAY_IN_SLIP: (True, False),
            PaymentMethod.MOBILE_MONEY: (False, True),
        }[self.payment_method]
        present = (self.pay_in_slip is not None, self.mobile_money is not None)
        if present != expected:
            raise ValueError(
                f"payment details do not match payment method '{self.payment_method.value}'"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_BOOKING_STATUSES
