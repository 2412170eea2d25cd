"""
Core matching engine with price-time priority.

This module contains the MatchingEngine class that validates incoming
orders against the asset registry and the balance ledger, walks the
opposing side of the book, settles every fill in the ledger and rests
what is left of limit orders.
"""

import logging
import threading
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Union

from .asset_registry import AssetRegistry
from .errors import (
    CannotTradeQuoteAsset,
    ExchangeError,
    InsufficientAssetBalance,
    InsufficientQuoteBalance,
    InvalidOrder,
)
from .fixed_point import checked_add, checked_mul, validate_amount
from .ledger import BalanceLedger
from .order import Order, Trade, describe
from .order_book import Market, OrderBook
from .order_types import OrderSide, OrderType, validate_order_side
from ..utils.logger import ExchangeLogger

logger = logging.getLogger(__name__)

SideLike = Union[OrderSide, str]


def _side_label(side: SideLike) -> str:
    return side.value if isinstance(side, OrderSide) else str(side)


class MatchingEngine:
    """
    Matching engine for a custodial exchange.

    Features:
    - Price-time priority matching, resting order sets the trade price
    - Limit orders rest their remainder, market orders never rest
    - Every order fully collateralized before it touches the book
    - Validation failures leave ledger and book untouched
    - Trade and market data callbacks

    One re-entrant lock serializes every operation over the ledger and the
    books; the owning Exchange takes the same lock for deposits and
    withdrawals.
    """

    def __init__(
        self,
        registry: AssetRegistry,
        ledger: BalanceLedger,
        market: Optional[Market] = None,
        trade_history: int = 1000,
    ):
        """
        Initialize the matching engine.

        Args:
            registry: Asset registry consulted for tradability
            ledger: Balance ledger backing every order
            market: Order books; a fresh Market when omitted
            trade_history: Trades kept per asset for queries
        """
        self.registry = registry
        self.ledger = ledger
        self.market = market if market is not None else Market()
        self.lock = threading.RLock()

        self._next_order_id = 0
        self._next_trade_id = 0
        self._trade_history = trade_history
        self.trades: Dict[str, Deque[Trade]] = {}

        # Callbacks for real-time data
        self.trade_callbacks: List[Callable[[Trade], None]] = []
        self.market_data_callbacks: List[Callable[[Dict[str, Any]], None]] = []

        # Statistics
        self.total_orders_processed = 0
        self.total_orders_rejected = 0
        self.total_trades_executed = 0
        self.total_volume = 0
        self.start_time = datetime.now(timezone.utc)

        self.events = ExchangeLogger()
        logger.info("Matching engine initialized")

    # ------------------------------------------------------------------
    # Order entry
    # ------------------------------------------------------------------

    def place_limit_order(
        self, trader: str, asset: str, amount: int, price: int, side: SideLike
    ) -> Tuple[Order, List[Trade]]:
        """
        Place a limit order.

        Matches against the opposing side up to `price`; any remainder rests
        on the book with its collateral locked.

        Args:
            trader: Account placing the order
            asset: Traded asset symbol
            amount: Quantity in the asset's smallest unit
            price: Limit price in quote units per asset unit
            side: BUY or SELL

        Returns:
            Tuple of (copy of the order after matching, trades executed)

        Raises:
            InvalidOrder, InvalidAmount, AmountOverflow, UnknownAsset,
            CannotTradeQuoteAsset, InsufficientAssetBalance,
            InsufficientQuoteBalance
        """
        with self.lock:
            self.events.log_order_submission(trader, asset, OrderType.LIMIT.value, _side_label(side), amount, price)
            try:
                side = self._coerce_side(side)
                self._validate(trader, asset, amount, side, price)
            except ExchangeError as e:
                self._reject(trader, asset, e)
                raise

            order = self._new_order(trader, asset, amount, side, price, OrderType.LIMIT)
            return self._execute(order)

    def place_market_order(
        self, trader: str, asset: str, amount: int, side: SideLike
    ) -> Tuple[Order, List[Trade]]:
        """
        Place a market order.

        Consumes the opposing side at any price until `amount` is filled or
        the side is empty. The unfilled remainder is dropped.

        Args:
            trader: Account placing the order
            asset: Traded asset symbol
            amount: Quantity in the asset's smallest unit
            side: BUY or SELL

        Returns:
            Tuple of (the transient order after matching, trades executed)
        """
        with self.lock:
            self.events.log_order_submission(trader, asset, OrderType.MARKET.value, _side_label(side), amount)
            try:
                side = self._coerce_side(side)
                self._validate(trader, asset, amount, side, None)
            except ExchangeError as e:
                self._reject(trader, asset, e)
                raise

            order = self._new_order(trader, asset, amount, side, 0, OrderType.MARKET)
            return self._execute(order)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _coerce_side(self, side: SideLike) -> OrderSide:
        if isinstance(side, OrderSide):
            return side
        if isinstance(side, str):
            try:
                return validate_order_side(side)
            except ValueError as e:
                raise InvalidOrder(str(e))
        raise InvalidOrder(f"Unsupported order side {side!r}")

    def _validate(self, trader: str, asset: str, amount: int, side: OrderSide, price: Optional[int]) -> None:
        """
        Pre-validation shared by both entry points, fail-fast, read-only.

        A None price means a market order.
        """
        self.registry.resolve(asset)
        if self.registry.is_quote(asset):
            raise CannotTradeQuoteAsset(asset)

        validate_amount(amount)
        if price is not None:
            validate_amount(price, "price")

        if side == OrderSide.SELL:
            available = self.ledger.available_of(trader, asset)
            if available < amount:
                raise InsufficientAssetBalance(asset, amount, available)
            return

        quote = self.registry.quote_symbol
        if price is None:
            _, required = self.cost_to_fill(asset, amount)
        else:
            required = checked_mul(amount, price)
        available = self.ledger.available_of(trader, quote)
        if available < required:
            raise InsufficientQuoteBalance(quote, required, available)

    def cost_to_fill(self, asset: str, amount: int) -> Tuple[int, int]:
        """
        Walk the SELL side to price a BUY of `amount`.

        Args:
            asset: Traded asset symbol
            amount: Quantity to buy

        Returns:
            Tuple of (coverable quantity, quote cost of that quantity). When
            the side cannot cover `amount`, only the coverable part is priced.
        """
        left = amount
        cost = 0
        for resting in self.market.best_opposing(asset, OrderSide.BUY):
            if left == 0:
                break
            quantity = min(left, resting.remaining)
            cost = checked_add(cost, checked_mul(quantity, resting.price))
            left -= quantity
        return amount - left, cost

    def _reject(self, trader: str, asset: str, error: ExchangeError) -> None:
        self.total_orders_rejected += 1
        self.events.log_rejection(trader, asset, type(error).__name__, error.message)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def _new_order(
        self, trader: str, asset: str, amount: int, side: OrderSide, price: int, order_type: OrderType
    ) -> Order:
        order = Order(
            order_id=self._next_order_id,
            trader=trader,
            side=side,
            asset=asset,
            amount=amount,
            price=price,
            order_type=order_type,
        )
        self._next_order_id += 1
        return order

    def _execute(self, order: Order) -> Tuple[Order, List[Trade]]:
        """Match a validated order, rest a limit remainder, prune the book."""
        book = self.market.book(order.asset)
        trades = self._match(order, book)

        if order.remaining > 0 and order.order_type == OrderType.LIMIT:
            self._rest(order)
        elif order.remaining > 0:
            logger.info(f"Market order {order.order_id} dropped unfilled remainder {order.remaining}")

        removed = self.market.remove_fully_filled(order.asset, order.side.opposite)
        for filled_order in removed:
            self.events.log_order_execution(filled_order.order_id, filled_order.status.value, filled_order.filled)

        # Update statistics
        self.total_orders_processed += 1
        self.total_trades_executed += len(trades)
        for trade in trades:
            self.total_volume += trade.notional_value

        self._record_trades(order.asset, trades)
        self._notify_trades(trades)
        self._notify_market_data(order.asset)

        self.events.log_order_execution(order.order_id, order.status.value, order.filled)
        logger.info(f"Processed order {describe(order)}: {len(trades)} trades executed")

        # The caller gets a copy; the book owns resting orders
        return replace(order), trades

    def _match(self, order: Order, book: OrderBook) -> List[Trade]:
        trades = []
        for resting in self.market.best_opposing(order.asset, order.side):
            if order.remaining == 0:
                break
            if not self._crosses(order, resting):
                break
            quantity = min(order.remaining, resting.remaining)
            trade = self._settle(order, resting, quantity)
            book.last_trade_price = trade.price
            trades.append(trade)
        return trades

    @staticmethod
    def _crosses(incoming: Order, resting: Order) -> bool:
        """Whether `incoming` may trade at the resting order's price."""
        if incoming.order_type == OrderType.MARKET:
            return True
        if incoming.side == OrderSide.BUY:
            return resting.price <= incoming.price
        return resting.price >= incoming.price

    def _settle(self, incoming: Order, resting: Order, quantity: int) -> Trade:
        """
        Apply one fill to the ledger and to both orders.

        The resting order's commitment is released first, then the asset
        moves seller -> buyer and the quote moves buyer -> seller at the
        resting price.
        """
        asset = incoming.asset
        quote = self.registry.quote_symbol
        price = resting.price
        cost = checked_mul(quantity, price)

        if incoming.side == OrderSide.BUY:
            buyer, seller = incoming.trader, resting.trader
            self.ledger.release(seller, asset, quantity)
        else:
            buyer, seller = resting.trader, incoming.trader
            self.ledger.release(buyer, quote, cost)

        self.ledger.debit(seller, asset, quantity)
        self.ledger.credit(buyer, asset, quantity)
        self.ledger.debit(buyer, quote, cost)
        self.ledger.credit(seller, quote, cost)

        resting.fill(quantity)
        incoming.fill(quantity)

        trade = Trade(
            trade_id=self._next_trade_id,
            asset=asset,
            price=price,
            amount=quantity,
            buyer=buyer,
            seller=seller,
            aggressor_side=incoming.side,
            maker_order_id=resting.order_id,
            taker_order_id=incoming.order_id,
        )
        self._next_trade_id += 1
        self.events.log_trade_execution(trade.trade_id, asset, price, quantity, incoming.side.value)
        return trade

    def _rest(self, order: Order) -> None:
        """Lock the collateral of a limit remainder and put it on the book."""
        if order.side == OrderSide.SELL:
            self.ledger.lock(order.trader, order.asset, order.remaining)
        else:
            self.ledger.lock(order.trader, self.registry.quote_symbol, checked_mul(order.remaining, order.price))
        self.market.insert(order)
        logger.debug(f"Order {describe(order)} rests with {order.remaining} open")

    def _record_trades(self, asset: str, trades: List[Trade]) -> None:
        if not trades:
            return
        history = self.trades.get(asset)
        if history is None:
            history = deque(maxlen=self._trade_history)
            self.trades[asset] = history
        history.extend(trades)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_orders(self, asset: str, side: SideLike) -> List[Order]:
        """Snapshot of one side of a book, in priority order."""
        with self.lock:
            return self.market.snapshot(asset, self._coerce_side(side))

    def get_order_book(self, asset: str) -> Optional[OrderBook]:
        """Get order book for an asset."""
        return self.market.get(asset)

    def get_bbo(self, asset: str) -> Tuple[Optional[int], Optional[int]]:
        """Get Best Bid and Offer for an asset."""
        book = self.market.get(asset)
        if book is None:
            return None, None
        return book.get_bbo()

    def get_order_book_depth(self, asset: str, side: str, depth: int = 10) -> List[List[str]]:
        """Get order book depth for an asset."""
        book = self.market.get(asset)
        if book is None:
            return []
        return book.get_order_book_depth(side, depth)

    def get_trades(self, asset: str, limit: Optional[int] = None) -> List[Trade]:
        """Most recent trades of an asset, oldest first."""
        with self.lock:
            history = list(self.trades.get(asset, ()))
        if limit is not None:
            history = history[-limit:] if limit > 0 else []
        return history

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def add_trade_callback(self, callback: Callable[[Trade], None]) -> None:
        """Add callback for trade executions."""
        self.trade_callbacks.append(callback)

    def add_market_data_callback(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Add callback for market data updates."""
        self.market_data_callbacks.append(callback)

    def _notify_trades(self, trades: List[Trade]) -> None:
        """Notify trade callbacks."""
        for trade in trades:
            for callback in self.trade_callbacks:
                try:
                    callback(trade)
                except Exception as e:
                    logger.error(f"Error in trade callback: {str(e)}")

    def _notify_market_data(self, asset: str) -> None:
        """Notify market data callbacks."""
        if not self.market_data_callbacks:
            return

        market_data = self.market_data(asset)
        for callback in self.market_data_callbacks:
            try:
                callback(market_data)
            except Exception as e:
                logger.error(f"Error in market data callback: {str(e)}")

    def market_data(self, asset: str, depth: int = 10) -> Dict[str, Any]:
        """Top-of-book view of an asset."""
        best_bid, best_ask = self.get_bbo(asset)
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "asset": asset,
            "bids": self.get_order_book_depth(asset, "bids", depth),
            "asks": self.get_order_book_depth(asset, "asks", depth),
            "best_bid": str(best_bid) if best_bid is not None else None,
            "best_ask": str(best_ask) if best_ask is not None else None,
        }

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Get engine statistics."""
        uptime = datetime.now(timezone.utc) - self.start_time

        return {
            "uptime_seconds": uptime.total_seconds(),
            "total_orders_processed": self.total_orders_processed,
            "total_orders_rejected": self.total_orders_rejected,
            "total_trades_executed": self.total_trades_executed,
            "total_volume": str(self.total_volume),
            "active_assets": self.market.assets(),
            "orders_per_second": self.total_orders_processed / max(uptime.total_seconds(), 1),
            "trades_per_second": self.total_trades_executed / max(uptime.total_seconds(), 1),
        }

    def get_asset_statistics(self, asset: str) -> Optional[Dict[str, Any]]:
        """Get statistics for a specific asset's book."""
        book = self.market.get(asset)
        if book is None:
            return None
        return book.get_statistics()
