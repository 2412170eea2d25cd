"""
Order book implementation with price-time priority.

Each asset has one book with a BUY side and a SELL side. A side keeps its
price levels in a sorted price index and each level keeps its orders in a
FIFO deque, so iterating a side yields orders best price first and, within
a price, earliest order first.
"""

import bisect
import logging
from collections import deque
from dataclasses import replace
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

from .order import Order
from .order_types import OrderSide, OrderType

logger = logging.getLogger(__name__)


class PriceLevel:
    """
    Represents a price level in the order book.

    Maintains orders at the same price in FIFO (first-in-first-out) order
    to ensure proper time priority within each price level.
    """

    def __init__(self, price: int):
        """
        Initialize a price level.

        Args:
            price: The price level for this group of orders
        """
        self.price = price
        self.orders: Deque[Order] = deque()  # FIFO queue for time priority

    def add_order(self, order: Order) -> None:
        """
        Add an order to the back of this price level.

        Args:
            order: The order to add
        """
        self.orders.append(order)
        logger.debug(f"Added order {order.order_id} to price level {self.price}")

    @property
    def total_remaining(self) -> int:
        """Open quantity across all orders at this price."""
        return sum(order.remaining for order in self.orders)

    def is_empty(self) -> bool:
        """Check if this price level is empty."""
        return len(self.orders) == 0

    def __len__(self) -> int:
        """Return number of orders in this price level."""
        return len(self.orders)

    def __repr__(self) -> str:
        return f"PriceLevel(price={self.price}, orders={len(self.orders)}, remaining={self.total_remaining})"


class BookSide:
    """
    One side of a book.

    BUY sides rank higher prices first, SELL sides lower prices first. The
    price index stores priority keys (the negated price for BUY) so that
    ascending key order is always matching priority.
    """

    def __init__(self, side: OrderSide):
        self.side = side
        self.levels: Dict[int, PriceLevel] = {}
        self._keys: List[int] = []

    def _key(self, price: int) -> int:
        return -price if self.side == OrderSide.BUY else price

    def _price(self, key: int) -> int:
        return -key if self.side == OrderSide.BUY else key

    def insert(self, order: Order) -> None:
        level = self.levels.get(order.price)
        if level is None:
            level = PriceLevel(order.price)
            self.levels[order.price] = level
            bisect.insort(self._keys, self._key(order.price))
        level.add_order(order)

    def __iter__(self) -> Iterator[Order]:
        """
        Yield open orders in matching priority.

        Every call starts from the current best price. Orders filled while
        the iteration is suspended are skipped when reached.
        """
        for key in list(self._keys):
            level = self.levels.get(self._price(key))
            if level is None:
                continue
            for order in list(level.orders):
                if not order.is_fully_filled:
                    yield order

    def resting(self) -> Iterator[Order]:
        """Every order on this side in book order, filled ones included."""
        for key in self._keys:
            yield from self.levels[self._price(key)].orders

    def pop_filled(self) -> List[Order]:
        """
        Remove fully filled orders from the head of the side.

        Fills always consume the side head-first, so popping while the head
        is filled removes every filled order.
        """
        removed = []
        while self._keys:
            price = self._price(self._keys[0])
            level = self.levels[price]
            while level.orders and level.orders[0].is_fully_filled:
                removed.append(level.orders.popleft())
            if not level.is_empty():
                break
            del self.levels[price]
            self._keys.pop(0)
        return removed

    def best_price(self) -> Optional[int]:
        if not self._keys:
            return None
        return self._price(self._keys[0])

    def depth(self, depth: int) -> List[List[str]]:
        """Aggregated [price, remaining] pairs for the best `depth` levels."""
        result = []
        for key in self._keys[:depth]:
            level = self.levels[self._price(key)]
            result.append([str(level.price), str(level.total_remaining)])
        return result

    def total_remaining(self) -> int:
        return sum(level.total_remaining for level in self.levels.values())

    def __len__(self) -> int:
        return sum(len(level) for level in self.levels.values())


class OrderBook:
    """
    Order book for one traded asset.

    Holds resting limit orders only; market orders never enter the book.
    """

    def __init__(self, asset: str):
        """
        Initialize order book for a traded asset.

        Args:
            asset: Traded asset symbol (e.g., "REP")
        """
        self.asset = asset
        self.bids = BookSide(OrderSide.BUY)
        self.asks = BookSide(OrderSide.SELL)

        # Order lookup for O(1) access
        self.orders: Dict[int, Order] = {}

        self.last_trade_price: Optional[int] = None

        logger.info(f"Initialized order book for {asset}")

    def side(self, side: OrderSide) -> BookSide:
        return self.bids if side == OrderSide.BUY else self.asks

    def insert(self, order: Order) -> None:
        """
        Insert a resting limit order in price-time order.

        Args:
            order: The order to rest on the book

        Raises:
            ValueError: If the order does not belong on this book
        """
        if order.asset != self.asset:
            raise ValueError(f"Order asset {order.asset} does not match book asset {self.asset}")
        if order.order_type != OrderType.LIMIT:
            raise ValueError(f"Only limit orders can rest on the book, got {order.order_type.value}")
        if order.is_fully_filled:
            raise ValueError(f"Order {order.order_id} is already filled")
        if order.order_id in self.orders:
            raise ValueError(f"Order {order.order_id} is already on the book")

        self.side(order.side).insert(order)
        self.orders[order.order_id] = order

    def best_opposing(self, side: OrderSide) -> Iterator[Order]:
        """
        Iterate the side an incoming `side` order matches against.

        Args:
            side: Side of the incoming order

        Returns:
            Lazy iterator over resting orders, best price first
        """
        return iter(self.side(side.opposite))

    def remove_fully_filled(self, side: OrderSide) -> List[Order]:
        """
        Prune filled orders from one side.

        Returns:
            The removed orders
        """
        removed = self.side(side).pop_filled()
        for order in removed:
            del self.orders[order.order_id]
        return removed

    def snapshot(self, side: OrderSide) -> List[Order]:
        """Copies of the resting orders of one side, in book order."""
        return [replace(order) for order in self.side(side).resting()]

    def get_bbo(self) -> Tuple[Optional[int], Optional[int]]:
        """
        Get Best Bid and Offer (BBO).

        Returns:
            Tuple of (best_bid, best_ask) prices
        """
        return self.bids.best_price(), self.asks.best_price()

    def get_order_book_depth(self, side: str, depth: int = 10) -> List[List[str]]:
        """
        Get order book depth for a specific side.

        Args:
            side: "bids" or "asks"
            depth: Maximum number of price levels to return

        Returns:
            List of [price, remaining] pairs
        """
        if side == "bids":
            return self.bids.depth(depth)
        return self.asks.depth(depth)

    def get_order(self, order_id: int) -> Optional[Order]:
        """Get a copy of a resting order by ID."""
        order = self.orders.get(order_id)
        return replace(order) if order else None

    def get_statistics(self) -> Dict[str, Any]:
        """Get order book statistics."""
        best_bid, best_ask = self.get_bbo()
        spread = best_ask - best_bid if best_bid is not None and best_ask is not None else None

        return {
            "asset": self.asset,
            "best_bid": str(best_bid) if best_bid is not None else None,
            "best_ask": str(best_ask) if best_ask is not None else None,
            "spread": str(spread) if spread is not None else None,
            "total_bid_remaining": str(self.bids.total_remaining()),
            "total_ask_remaining": str(self.asks.total_remaining()),
            "bid_levels": len(self.bids.levels),
            "ask_levels": len(self.asks.levels),
            "total_orders": len(self.orders),
            "last_trade_price": str(self.last_trade_price) if self.last_trade_price is not None else None,
        }


class Market:
    """
    All order books, keyed by traded asset.

    Owned by the matching engine; every book operation names its
    (asset, side) explicitly.
    """

    def __init__(self):
        self.books: Dict[str, OrderBook] = {}

    def book(self, asset: str) -> OrderBook:
        """Get the book for an asset, creating it on first use."""
        if asset not in self.books:
            self.books[asset] = OrderBook(asset)
        return self.books[asset]

    def get(self, asset: str) -> Optional[OrderBook]:
        return self.books.get(asset)

    def insert(self, order: Order) -> None:
        self.book(order.asset).insert(order)

    def best_opposing(self, asset: str, side: OrderSide) -> Iterator[Order]:
        book = self.books.get(asset)
        if book is None:
            return iter(())
        return book.best_opposing(side)

    def remove_fully_filled(self, asset: str, side: OrderSide) -> List[Order]:
        book = self.books.get(asset)
        if book is None:
            return []
        return book.remove_fully_filled(side)

    def snapshot(self, asset: str, side: OrderSide) -> List[Order]:
        book = self.books.get(asset)
        if book is None:
            return []
        return book.snapshot(side)

    def assets(self) -> List[str]:
        return list(self.books.keys())
