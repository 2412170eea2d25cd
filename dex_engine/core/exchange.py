"""
Exchange facade.

Wires the asset registry, the balance ledger and the matching engine
together and exposes the operations an outer transport calls: asset
listing, deposits, withdrawals, order entry and read-only queries. Every
operation runs under the matching engine's lock, so each one completes
before the next begins.
"""

import logging
from contextlib import contextmanager, nullcontext
from typing import Any, Dict, List, Optional, Tuple

from .asset_registry import Asset, AssetRegistry
from .errors import AmountOverflow, ExchangeError, InvalidOrder
from .fixed_point import MAX_AMOUNT, validate_amount
from .ledger import BalanceLedger
from .matching_engine import MatchingEngine, SideLike
from .order import Order, Trade
from .order_types import OrderType
from .transfers import AssetTransfer
from ..utils.performance import PerformanceMonitor, measure_latency

logger = logging.getLogger(__name__)


class Exchange:
    """
    Custodial exchange over one quote asset.

    Accounts are opaque identifiers authenticated upstream. Assets move in
    and out of custody through the transfer handle each asset was
    registered with.
    """

    def __init__(
        self,
        quote_symbol: Optional[str] = None,
        monitor: Optional[PerformanceMonitor] = None,
        trade_history: int = 1000,
    ):
        """
        Initialize the exchange.

        Args:
            quote_symbol: Quote asset symbol; defaults to the first asset added
            monitor: Optional performance monitor timing every operation
            trade_history: Trades kept per asset for queries
        """
        self.registry = AssetRegistry(quote_symbol=quote_symbol)
        self.ledger = BalanceLedger()
        self.engine = MatchingEngine(self.registry, self.ledger, trade_history=trade_history)
        self.monitor = monitor

    @contextmanager
    def _operation(self, name: str):
        """Serialize one public operation and time it when monitored."""
        timer = measure_latency(self.monitor, name) if self.monitor else nullcontext()
        with self.engine.lock, timer:
            yield

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add_asset(self, symbol: str, handle: AssetTransfer, quote: bool = False) -> Asset:
        """
        Register a tradable asset.

        Raises:
            DuplicateAsset: If the symbol is already registered
        """
        with self._operation("add_asset"):
            return self.registry.register(symbol, handle, quote=quote)

    def get_assets(self) -> List[Asset]:
        with self.engine.lock:
            return self.registry.assets()

    @property
    def quote_symbol(self) -> Optional[str]:
        return self.registry.quote_symbol

    # ------------------------------------------------------------------
    # Custody
    # ------------------------------------------------------------------

    def deposit(self, amount: int, symbol: str, account: str) -> int:
        """
        Move `amount` of an asset into custody and credit the account.

        Returns:
            The account's new balance

        Raises:
            UnknownAsset: If the asset is not registered
            AmountOverflow: If custody of the asset would exceed MAX_AMOUNT
            TransferError: If the external transfer is refused
        """
        with self._operation("deposit"):
            handle = self.registry.resolve(symbol)
            validate_amount(amount)
            # Every balance stays below the custody total, so settlement credits cannot overflow
            custody = self.ledger.total_supply(symbol)
            if custody + amount > MAX_AMOUNT:
                raise AmountOverflow(f"custody of {symbol} {custody} + deposit {amount} exceeds {MAX_AMOUNT}")
            handle.transfer_in(account, amount)
            try:
                balance = self.ledger.credit(account, symbol, amount)
            except ExchangeError:
                handle.transfer_out(account, amount)
                raise
            self.engine.events.log_transfer("DEPOSIT", account, symbol, amount)
            return balance

    def withdraw(self, amount: int, symbol: str, account: str) -> int:
        """
        Debit the account and move `amount` of an asset out of custody.

        Only the part of the balance not committed to resting orders can be
        withdrawn.

        Returns:
            The account's new balance

        Raises:
            UnknownAsset: If the asset is not registered
            InsufficientBalance: If the available balance is too low
        """
        with self._operation("withdraw"):
            handle = self.registry.resolve(symbol)
            validate_amount(amount)
            balance = self.ledger.debit(account, symbol, amount)
            try:
                handle.transfer_out(account, amount)
            except ExchangeError:
                self.ledger.credit(account, symbol, amount)
                raise
            self.engine.events.log_transfer("WITHDRAW", account, symbol, amount)
            return balance

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def submit_order(
        self,
        symbol: str,
        order_type: OrderType,
        side: SideLike,
        amount: int,
        account: str,
        price: Optional[int] = None,
    ) -> Tuple[Order, List[Trade]]:
        """
        Submit a limit or market order.

        Args:
            symbol: Traded asset symbol
            order_type: LIMIT or MARKET
            side: BUY or SELL
            amount: Quantity in the asset's smallest unit
            account: Account placing the order
            price: Limit price; ignored for market orders

        Returns:
            Tuple of (order after matching, trades executed)
        """
        with self._operation(f"{order_type.value}_order"):
            if order_type == OrderType.LIMIT:
                if price is None:
                    raise InvalidOrder("Price is required for limit orders")
                return self.engine.place_limit_order(account, symbol, amount, price, side)
            return self.engine.place_market_order(account, symbol, amount, side)

    def create_limit_order(self, symbol: str, amount: int, price: int, side: SideLike, account: str) -> int:
        """
        Create a limit order.

        Returns:
            The new order's id
        """
        order, _ = self.submit_order(symbol, OrderType.LIMIT, side, amount, account, price)
        return order.order_id

    def create_market_order(self, symbol: str, amount: int, side: SideLike, account: str) -> List[Trade]:
        """
        Create a market order.

        Returns:
            The trades it executed; an unfillable remainder is dropped
        """
        _, trades = self.submit_order(symbol, OrderType.MARKET, side, amount, account)
        return trades

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_orders(self, symbol: str, side: SideLike) -> List[Order]:
        """Resting orders of one side of a book, best first."""
        return self.engine.get_orders(symbol, side)

    def get_order(self, symbol: str, order_id: int) -> Optional[Order]:
        """A resting order by id, None once filled or for market orders."""
        with self.engine.lock:
            book = self.engine.get_order_book(symbol)
            return book.get_order(order_id) if book else None

    def balance_of(self, account: str, symbol: str) -> int:
        with self.engine.lock:
            return self.ledger.balance_of(account, symbol)

    def available_balance_of(self, account: str, symbol: str) -> int:
        """Balance not committed to resting orders."""
        with self.engine.lock:
            return self.ledger.available_of(account, symbol)

    def get_trades(self, symbol: str, limit: Optional[int] = None) -> List[Trade]:
        return self.engine.get_trades(symbol, limit)

    def get_market_data(self, symbol: str, depth: int = 10) -> Dict[str, Any]:
        """
        Order book view of an asset: best bid and ask plus aggregated depth.

        Raises:
            UnknownAsset: If the asset is not registered
        """
        with self.engine.lock:
            self.registry.resolve(symbol)
            data = self.engine.market_data(symbol, depth)
            data["statistics"] = self.engine.get_asset_statistics(symbol)
            return data

    def get_statistics(self) -> Dict[str, Any]:
        """Engine statistics, with the performance summary when monitored."""
        with self.engine.lock:
            stats = self.engine.get_statistics()
            stats["assets"] = [asset.symbol for asset in self.registry.assets()]
            stats["quote_asset"] = self.registry.quote_symbol
        if self.monitor:
            stats["performance"] = self.monitor.get_summary()
        return stats
