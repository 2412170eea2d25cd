"""Checked integer arithmetic for balances, amounts and prices.

All amounts are ints in the asset's smallest unit, bounded like a uint256.
No float, no Decimal.
"""

from .errors import AmountOverflow, InvalidAmount

MAX_AMOUNT = 2 ** 256 - 1


def validate_amount(value: int, name: str = "amount", allow_zero: bool = False) -> int:
    """Reject non-int, non-positive (or negative) and out-of-range values."""
    # bool is an int subclass, but True is not an amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmount(f"{name} must be positive, got {value}")
    if value > MAX_AMOUNT:
        raise AmountOverflow(f"{name} {value} exceeds {MAX_AMOUNT}")
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > MAX_AMOUNT:
        raise AmountOverflow(f"{a} + {b}")
    return result


def checked_mul(quantity: int, price: int) -> int:
    """quantity * price, refusing results that leave the uint256 range."""
    result = quantity * price
    if result > MAX_AMOUNT:
        raise AmountOverflow(f"{quantity} * {price}")
    return result
