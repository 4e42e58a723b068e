"""
Decimal helpers for money and rate arithmetic.

Ledger amounts arrive as Decimal from Numeric columns, but may be None on
freshly constructed rows or plain numbers in API payloads.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """
    Coerce a stored or submitted amount to Decimal; missing values count as zero.

    Raises InvalidOperation for values that are not numbers.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Unparseable amount {value!r}")
        raise


def quantize_money(value) -> Decimal:
    """Round to cents, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def commission_for(rolling_amount, commission_rate) -> Decimal:
    """Rolling commission in cents for an amount at a fractional rate (0.014 = 1.4%)."""
    return quantize_money(to_decimal(rolling_amount) * to_decimal(commission_rate))
