"""
Key layout for payment transaction records.

    carrental:payment:<reference>          JSON transaction record
    carrental:payment:<reference>:claimed  set once the payment is applied
"""

KEY_PREFIX = "carrental"


def payment_key(reference: str) -> str:
    return f"{KEY_PREFIX}:payment:{reference}"


def claim_key(reference: str) -> str:
    return f"{payment_key(reference)}:claimed"
