"""
Order and Trade data structures for the exchange engine.

Amounts and prices are integers in the smallest unit of their asset;
prices are quote-asset units per unit of the traded asset.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .fixed_point import checked_mul
from .order_types import OrderSide, OrderStatus, OrderType


@dataclass
class Order:
    """
    A trading order.

    Orders are created by the matching engine, which assigns the id. The id
    is monotonic and doubles as the time-priority key inside the book. Only
    `filled` changes after creation.
    """

    order_id: int
    trader: str
    side: OrderSide
    asset: str
    amount: int
    price: int = 0
    order_type: OrderType = OrderType.LIMIT
    filled: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate order after initialization."""
        self._validate()

    def _validate(self) -> None:
        """
        Validate order parameters.

        Raises:
            ValueError: If order parameters are invalid
        """
        if not self.asset:
            raise ValueError("Asset cannot be empty")

        if self.amount <= 0:
            raise ValueError(f"Amount must be positive, got: {self.amount}")

        if self.order_type == OrderType.LIMIT and self.price <= 0:
            raise ValueError(f"Price must be positive for limit orders, got: {self.price}")

        if self.order_type == OrderType.MARKET and self.price != 0:
            raise ValueError(f"Market orders carry no price, got: {self.price}")

        if not 0 <= self.filled <= self.amount:
            raise ValueError(f"Filled {self.filled} outside [0, {self.amount}]")

    @property
    def remaining(self) -> int:
        """Quantity still open."""
        return self.amount - self.filled

    @property
    def is_fully_filled(self) -> bool:
        return self.filled == self.amount

    @property
    def status(self) -> OrderStatus:
        if self.is_fully_filled:
            return OrderStatus.FILLED
        if self.filled > 0:
            return OrderStatus.PARTIALLY_FILLED
        return OrderStatus.OPEN

    def fill(self, quantity: int) -> None:
        """Record `quantity` more units as matched."""
        if quantity <= 0 or quantity > self.remaining:
            raise ValueError(f"Cannot fill {quantity} of order {self.order_id} (remaining {self.remaining})")
        self.filled += quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for serialization."""
        return {
            "order_id": self.order_id,
            "trader": self.trader,
            "side": self.side.value,
            "asset": self.asset,
            "order_type": self.order_type.value,
            "price": str(self.price),
            "amount": str(self.amount),
            "filled": str(self.filled),
            "remaining": str(self.remaining),
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Trade:
    """
    A fill between a resting order and an incoming order.

    The resting order (maker) sets the price.
    """

    trade_id: int
    asset: str
    price: int
    amount: int
    buyer: str
    seller: str
    aggressor_side: OrderSide
    maker_order_id: int
    taker_order_id: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate trade after initialization."""
        if self.price <= 0:
            raise ValueError(f"Price must be positive, got: {self.price}")

        if self.amount <= 0:
            raise ValueError(f"Amount must be positive, got: {self.amount}")

    @property
    def notional_value(self) -> int:
        """Quote-asset units paid by the buyer."""
        return checked_mul(self.amount, self.price)

    @property
    def buy_order_id(self) -> int:
        return self.taker_order_id if self.aggressor_side == OrderSide.BUY else self.maker_order_id

    @property
    def sell_order_id(self) -> int:
        return self.taker_order_id if self.aggressor_side == OrderSide.SELL else self.maker_order_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert trade to dictionary for serialization."""
        return {
            "trade_id": self.trade_id,
            "asset": self.asset,
            "price": str(self.price),
            "amount": str(self.amount),
            "buyer": self.buyer,
            "seller": self.seller,
            "aggressor_side": self.aggressor_side.value,
            "maker_order_id": self.maker_order_id,
            "taker_order_id": self.taker_order_id,
            "notional_value": str(self.notional_value),
            "timestamp": self.timestamp.isoformat(),
        }


def describe(order: Optional[Order]) -> str:
    """Short log-friendly description of an order."""
    if order is None:
        return "-"
    price = "MKT" if order.order_type == OrderType.MARKET else str(order.price)
    return f"#{order.order_id} {order.side.value} {order.amount} {order.asset} @ {price}"
