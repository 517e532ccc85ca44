"""
Notification dispatch for booking events.

Notifications are fire-and-forget: a failing channel is logged and never
blocks, retries or undoes the booking transition that triggered it.
"""

import logging
from typing import Optional

from ..models.booking import BookingModel
from .interfaces import NotificationService

logger = logging.getLogger(__name__)


class LoggingNotificationService:
    """Notification service that only logs the messages it would send."""

    def send_confirmation(self, booking: BookingModel) -> None:
        logger.info(
            f"Booking confirmation for {booking.booking_id}: pickup {booking.start_date} "
            f"at {booking.pickup_location or 'our main office'}, return {booking.end_date}, "
            f"total {booking.total_amount}"
        )

    def send_receipt_email(self, booking_id: str) -> None:
        logger.info(f"Receipt e-mail queued for booking {booking_id}")

    def send_receipt_sms(self, booking_id: str) -> None:
        logger.info(f"Receipt SMS queued for booking {booking_id}")


class NotificationDispatcher:
    """Calls a notification service and swallows delivery failures with a warning."""

    def __init__(self, service: Optional[NotificationService] = None):
        self.service = service or LoggingNotificationService()

    def booking_confirmed(self, booking: BookingModel) -> None:
        self._dispatch("send_confirmation", booking)

    def receipt(self, booking_id: str, email: bool = True, sms: bool = True) -> None:
        if email:
            self._dispatch("send_receipt_email", booking_id)
        if sms:
            self._dispatch("send_receipt_sms", booking_id)

    def _dispatch(self, method_name: str, *args) -> None:
        try:
            getattr(self.service, method_name)(*args)
        except Exception as e:
            logger.warning(f"Notification {method_name} failed: {e}")
