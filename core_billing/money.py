"""
Money Helpers Module

Single-currency amounts are plain Decimal values quantized to cents.
NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Any, Optional

from .errors import ValidationError

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_amount(value: Any) -> Decimal:
    """
    Convert a value to a Decimal rounded to cents (ROUND_HALF_UP).

    Floats go through str() first so 0.1 becomes Decimal('0.1'), not its
    binary expansion.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"Invalid monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def optional_amount(value: Any) -> Optional[Decimal]:
    """Like to_amount() but passes None (and empty strings) through"""
    if value is None or value == "":
        return None
    return to_amount(value)
