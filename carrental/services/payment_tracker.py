"""
Mobile money transaction tracking in Valkey.

Each gateway transaction opened during checkout gets a short-lived record
keyed by its reference, so support staff can see which payments were
collected and whether a booking was created for them. The first attempt to
apply a successful payment claims it with SET NX, and later attempts with
the same reference are refused.

Tracking is advisory: when Valkey is unreachable the tracker logs a warning
and checkout proceeds.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..cache.client import ValkeyClient
from ..cache.keys import payment_key, claim_key
from ..models.enums import PaymentTransactionStatus
from ..utils.config import RentalConfig

logger = logging.getLogger(__name__)

DEFAULT_RECORD_TTL_SECONDS = 24 * 60 * 60


class PaymentTracker:
    """
    Records the lifecycle of mobile money transactions.

    A tracker without a client is a no-op, which is how checkout runs when
    no Valkey server is configured.
    """

    def __init__(
        self,
        client: Optional[ValkeyClient] = None,
        ttl_seconds: int = DEFAULT_RECORD_TTL_SECONDS
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_config(cls, config: RentalConfig, client: Optional[ValkeyClient] = None) -> "PaymentTracker":
        return cls(client=client, ttl_seconds=config.payment_record_ttl_seconds)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def record(
        self,
        reference: str,
        status: PaymentTransactionStatus,
        **fields: Any
    ) -> bool:
        """
        Store the current state of a transaction.

        Args:
            reference: Gateway transaction reference
            status: New transaction status
            **fields: Extra JSON-serializable details (amount, booking_id, ...)

        Returns:
            bool: True if the record was written
        """
        if not self.enabled:
            return False

        record: Dict[str, Any] = {
            "reference": reference,
            "status": status.value,
            "updated_at": datetime.now().isoformat(),
        }
        record.update(fields)

        try:
            await self.client.ensure_connection()
            self.client.client.set(
                payment_key(reference),
                json.dumps(record, default=str),
                ex=self.ttl_seconds
            )
            logger.debug(f"Payment {reference} recorded as {status.value}")
            return True
        except Exception as e:
            logger.warning(f"Could not record payment {reference} as {status.value}: {e}")
            return False

    async def get(self, reference: str) -> Optional[Dict[str, Any]]:
        """Return the stored record for a transaction, if any."""
        if not self.enabled:
            return None

        try:
            await self.client.ensure_connection()
            raw = self.client.client.get(payment_key(reference))
        except Exception as e:
            logger.warning(f"Could not read payment {reference}: {e}")
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Discarding unreadable payment record {reference}: {e}")
            return None

    async def claim(self, reference: str) -> bool:
        """
        Claim a successful payment so it is applied to one booking only.

        Returns:
            bool: False if the reference was already claimed. True when the
                claim succeeded or tracking is unavailable.
        """
        if not self.enabled:
            return True

        try:
            await self.client.ensure_connection()
            result = self.client.client.set(
                claim_key(reference),
                datetime.now().isoformat(),
                nx=True,
                ex=self.ttl_seconds
            )
        except Exception as e:
            logger.warning(f"Could not claim payment {reference}, continuing unguarded: {e}")
            return True

        if not result:
            logger.warning(f"Payment {reference} has already been applied to a booking")
            return False
        return True
