"""
Valkey integration for tracking mobile money transactions.
"""

from .config import ValkeyConfig, ValkeyConnectionError
from .client import ValkeyClient
from .keys import payment_key, claim_key

__all__ = [
    "ValkeyConfig",
    "ValkeyConnectionError",
    "ValkeyClient",
    "payment_key",
    "claim_key",
]
