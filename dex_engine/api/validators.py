"""
Input validation utilities for the API layer.

This module validates order, transfer and market data requests before
they reach the exchange. Amounts and prices travel as decimal integer
strings (or JSON integers) in the asset's smallest unit.
"""

import re
from typing import Any, Dict, Optional, Tuple
import logging

from ..core import asset_registry
from ..core.fixed_point import MAX_AMOUNT
from ..core.order_types import OrderSide, OrderType

logger = logging.getLogger(__name__)

# Plain decimal integers, no sign, no exponent
AMOUNT_PATTERN = re.compile(r'^[0-9]+$')

MAX_ACCOUNT_LENGTH = 128
DEFAULT_DEPTH = 10


def validate_symbol(symbol: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate asset symbol format.

    Args:
        symbol: Asset symbol to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not symbol:
        return False, "Symbol cannot be empty"

    if not isinstance(symbol, str):
        return False, "Symbol must be a string"

    try:
        asset_registry.validate_symbol(symbol)
    except ValueError as e:
        return False, str(e)

    return True, None


def validate_account(account: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate an account identifier.

    Accounts are authenticated upstream; only the shape is checked here.
    """
    if not account:
        return False, "Account cannot be empty"

    if not isinstance(account, str):
        return False, "Account must be a string"

    if len(account) > MAX_ACCOUNT_LENGTH:
        return False, f"Account too long. Maximum: {MAX_ACCOUNT_LENGTH} characters"

    return True, None


def validate_amount(amount: Any, name: str = "Amount", max_amount: int = MAX_AMOUNT) -> Tuple[bool, Optional[str], Optional[int]]:
    """
    Validate an integer amount.

    Args:
        amount: Amount to validate, an int or a decimal integer string
        name: Field name used in error messages
        max_amount: Largest accepted value

    Returns:
        Tuple of (is_valid, error_message, parsed_amount)
    """
    if amount is None:
        return False, f"{name} is required", None

    if isinstance(amount, bool):
        return False, f"Invalid {name.lower()} format: {amount}", None

    if isinstance(amount, int):
        value = amount
    elif isinstance(amount, str) and AMOUNT_PATTERN.match(amount):
        value = int(amount)
    else:
        return False, f"Invalid {name.lower()} format: {amount}. Expected an integer in the smallest unit", None

    if value <= 0:
        return False, f"{name} must be positive", None

    if value > max_amount:
        return False, f"{name} too large. Maximum: {max_amount}", None

    return True, None, value


def validate_price(price: Any, order_type: OrderType) -> Tuple[bool, Optional[str], Optional[int]]:
    """
    Validate order price.

    Args:
        price: Price to validate
        order_type: Type of order

    Returns:
        Tuple of (is_valid, error_message, parsed_price)
    """
    # Market orders don't need price
    if order_type == OrderType.MARKET:
        return True, None, None

    if price is None:
        return False, f"Price is required for {order_type.value} orders", None

    return validate_amount(price, "Price")


def validate_order_type(order_type: Any) -> Tuple[bool, Optional[str], Optional[OrderType]]:
    """
    Validate order type.

    Args:
        order_type: Order type to validate

    Returns:
        Tuple of (is_valid, error_message, parsed_order_type)
    """
    if not order_type:
        return False, "Order type is required", None

    if not isinstance(order_type, str):
        return False, "Order type must be a string", None

    try:
        ot = OrderType(order_type.lower())
    except ValueError:
        valid_types = [ot.value for ot in OrderType]
        return False, f"Invalid order type: {order_type}. Must be one of: {valid_types}", None

    return True, None, ot


def validate_order_side(side: Any) -> Tuple[bool, Optional[str], Optional[OrderSide]]:
    """
    Validate order side.

    Args:
        side: Order side to validate

    Returns:
        Tuple of (is_valid, error_message, parsed_order_side)
    """
    if not side:
        return False, "Order side is required", None

    if not isinstance(side, str):
        return False, "Order side must be a string", None

    try:
        parsed = OrderSide(side.lower())
    except ValueError:
        valid_sides = [s.value for s in OrderSide]
        return False, f"Invalid order side: {side}. Must be one of: {valid_sides}", None

    return True, None, parsed


def _check_required(data: Dict[str, Any], fields) -> Optional[str]:
    for field in fields:
        if field not in data:
            return f"Missing required field: {field}"
    return None


def validate_order_request(data: Dict[str, Any], max_amount: int = MAX_AMOUNT) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Validate complete order request.

    Args:
        data: Order request data
        max_amount: Largest accepted order amount

    Returns:
        Tuple of (is_valid, error_message, parsed_data)
    """
    error = _check_required(data, ['symbol', 'order_type', 'side', 'amount', 'account'])
    if error:
        return False, error, None

    is_valid, error = validate_symbol(data['symbol'])
    if not is_valid:
        return False, error, None

    is_valid, error = validate_account(data['account'])
    if not is_valid:
        return False, error, None

    is_valid, error, order_type = validate_order_type(data['order_type'])
    if not is_valid:
        return False, error, None

    is_valid, error, order_side = validate_order_side(data['side'])
    if not is_valid:
        return False, error, None

    is_valid, error, amount = validate_amount(data['amount'], max_amount=max_amount)
    if not is_valid:
        return False, error, None

    is_valid, error, price = validate_price(data.get('price'), order_type)
    if not is_valid:
        return False, error, None

    validated_data = {
        'symbol': data['symbol'],
        'account': data['account'],
        'order_type': order_type,
        'side': order_side,
        'amount': amount,
        'price': price,
    }

    return True, None, validated_data


def validate_transfer_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Validate a deposit or withdrawal request.

    Args:
        data: Transfer request data

    Returns:
        Tuple of (is_valid, error_message, parsed_data)
    """
    error = _check_required(data, ['symbol', 'amount', 'account'])
    if error:
        return False, error, None

    is_valid, error = validate_symbol(data['symbol'])
    if not is_valid:
        return False, error, None

    is_valid, error = validate_account(data['account'])
    if not is_valid:
        return False, error, None

    is_valid, error, amount = validate_amount(data['amount'])
    if not is_valid:
        return False, error, None

    return True, None, {'symbol': data['symbol'], 'account': data['account'], 'amount': amount}


def validate_depth_request(symbol: str, depth: Any, max_depth: int = 100) -> Tuple[bool, Optional[str], Optional[int]]:
    """
    Validate order book depth request.

    Args:
        symbol: Asset symbol
        depth: Depth parameter
        max_depth: Largest accepted depth

    Returns:
        Tuple of (is_valid, error_message, parsed_depth)
    """
    is_valid, error = validate_symbol(symbol)
    if not is_valid:
        return False, error, None

    if depth is None:
        return True, None, DEFAULT_DEPTH

    try:
        depth = int(depth)
    except (ValueError, TypeError):
        return False, f"Invalid depth format: {depth}. Must be an integer", None

    if depth <= 0:
        return False, "Depth must be positive", None

    if depth > max_depth:
        return False, f"Depth too large. Maximum: {max_depth}", None

    return True, None, depth
