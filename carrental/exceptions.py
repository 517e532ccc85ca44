"""
Error taxonomy for the car rental booking core.

Every error is raised by the core and recovered at the boundary with the
surrounding application, which owns the user-facing messaging.
"""

from typing import List, Optional


class RentalError(Exception):
    """Base class for booking core errors."""

    error_type = "rental_error"

    @property
    def messages(self) -> List[str]:
        return [str(self)]


class BookingValidationError(RentalError):
    """One or more booking rules were violated. Nothing was created."""

    error_type = "validation"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))

    @property
    def messages(self) -> List[str]:
        return list(self.errors)


class IllegalTransitionError(RentalError):
    """The requested status change is not allowed. No state was mutated."""

    error_type = "illegal_transition"


class SettlementFailure(RentalError):
    """The payment gateway cancelled or failed the transaction."""

    error_type = "settlement"

    def __init__(self, message: str, reference: Optional[str] = None):
        self.reference = reference
        super().__init__(message)


class InconsistencyError(RentalError):
    """The car status update paired with a booking transition did not succeed."""

    error_type = "inconsistency"


class BookingNotFoundError(RentalError):
    """No booking exists with the given identifier."""

    error_type = "not_found"


class CarNotFoundError(RentalError):
    """No car exists with the given identifier."""

    error_type = "not_found"


class PersistenceError(RentalError):
    """The data service failed while writing. The unit of work was rolled back."""

    error_type = "persistence"
