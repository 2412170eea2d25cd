"""
Order type definitions and enums for the exchange engine.

This module defines the order types and sides supported by the engine
and the lifecycle states an order passes through.
"""

from enum import Enum


class OrderType(Enum):
    """
    Supported order types.

    - MARKET: Execute immediately against the book at any price, never rests
    - LIMIT: Execute at the specified price or better, remainder rests
    """
    MARKET = "market"
    LIMIT = "limit"


class OrderSide(Enum):
    """
    Order sides for buy and sell orders.

    - BUY: Pay the quote asset to receive the traded asset
    - SELL: Deliver the traded asset to receive the quote asset
    """
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderStatus(Enum):
    """
    Order status derived from the filled quantity.

    - OPEN: Nothing filled yet
    - PARTIALLY_FILLED: Some quantity filled, still resting
    - FILLED: Completely executed and removed from the book
    """
    OPEN = "open"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"


def validate_order_side(side: str) -> OrderSide:
    """
    Validate and convert string order side to OrderSide enum.

    Args:
        side: String representation of order side

    Returns:
        OrderSide enum value

    Raises:
        ValueError: If side is invalid
    """
    try:
        return OrderSide(side.lower())
    except ValueError:
        raise ValueError(f"Invalid order side: {side}. Must be one of: {[s.value for s in OrderSide]}")
