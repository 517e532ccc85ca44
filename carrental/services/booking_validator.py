"""
Booking draft validation.

Checks a draft against the required-field, date, driver and payment rules
before a booking is allowed to proceed. Every violated rule is reported so
the form can show all problems at once.
"""

import logging
import re
from datetime import date, datetime
from typing import Callable, List, Optional

from ..models.booking import BookingDraft
from ..models.enums import PaymentMethod
from ..models.financial import ValidationResult

logger = logging.getLogger(__name__)

# 0XXXXXXXXX, 233XXXXXXXXX or +233XXXXXXXXX with an 8 or 9 digit subscriber number
GHANA_PHONE_PATTERN = re.compile(r"^(?:(?:\+?233|0)(?:\d{9}|\d{8}))$")


def is_ghana_phone_number(value: str) -> bool:
    return bool(GHANA_PHONE_PATTERN.match(value.strip()))


class BookingValidator:
    """
    Validator for booking drafts.

    "Today" comes from the injected clock unless passed explicitly, so the
    date rules can be checked deterministically.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def validate(self, draft: BookingDraft, today: Optional[date] = None) -> ValidationResult:
        """
        Validate a booking draft.

        Args:
            draft: Booking draft to check
            today: Calendar date the rules are checked against

        Returns:
            ValidationResult: Validity flag and every violated rule
        """
        today = today or self.clock().date()
        errors: List[str] = []

        errors.extend(self._check_required(draft))
        errors.extend(self._check_dates(draft, today))

        if draft.self_drive:
            errors.extend(self._check_license(draft, today))
        elif not (draft.driver_id or "").strip():
            errors.append("Please select a driver")

        if draft.payment_method == PaymentMethod.PAY_IN_SLIP:
            errors.extend(self._check_pay_in_slip(draft))
        elif draft.payment_method == PaymentMethod.MOBILE_MONEY:
            errors.extend(self._check_mobile_money(draft))

        if errors:
            logger.info(f"Booking draft rejected with {len(errors)} error(s): {errors}")

        return ValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def _check_required(draft: BookingDraft) -> List[str]:
        errors = []
        if not draft.car_id.strip():
            errors.append("Car is required")
        if not draft.customer_id.strip():
            errors.append("Customer is required")
        if draft.start_date is None:
            errors.append("Start date is required")
        if draft.end_date is None:
            errors.append("End date is required")
        return errors

    @staticmethod
    def _check_dates(draft: BookingDraft, today: date) -> List[str]:
        errors = []
        if draft.start_date and draft.end_date and draft.end_date <= draft.start_date:
            errors.append("End date must be after start date")
        if draft.start_date and draft.start_date < today:
            errors.append("Start date cannot be in the past")
        return errors

    @staticmethod
    def _check_license(draft: BookingDraft, today: date) -> List[str]:
        errors = []
        if not draft.driver_license_id.strip():
            errors.append("Please enter driver's license number")
        if not draft.driver_license_class.strip():
            errors.append("Please enter license class")
        if draft.driver_license_issue_date is None:
            errors.append("Please select license issue date")
        if draft.driver_license_expiry_date is None:
            errors.append("Please select license expiry date")
        elif draft.driver_license_expiry_date < today:
            errors.append("Driver's license has expired. Please provide a valid license.")
        return errors

    @staticmethod
    def _check_pay_in_slip(draft: BookingDraft) -> List[str]:
        slip = draft.pay_in_slip
        required = (
            ("bank_name", "Please enter bank name for pay-in-slip"),
            ("branch", "Please enter bank branch"),
            ("payee_name", "Please enter payee name"),
            ("reference_number", "Please enter reference number"),
            ("slip_number", "Please enter slip number"),
        )
        return [
            message for field_name, message in required
            if slip is None or not getattr(slip, field_name).strip()
        ]

    @staticmethod
    def _check_mobile_money(draft: BookingDraft) -> List[str]:
        phone = draft.mobile_money.phone_number if draft.mobile_money else ""
        if not phone.strip():
            return ["Please enter phone number for mobile money payment"]
        if not is_ghana_phone_number(phone):
            return ["Please enter a valid Ghanaian phone number"]
        return []
