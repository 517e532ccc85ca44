"""
Car rental booking core.

Pricing, validation, payment settlement, refunds, late-return penalties and
the booking state machine for the rental back office.
"""

__version__ = "0.1.0"
