"""
Core exchange components.

This module contains the asset registry, the balance ledger, the order
books and the matching engine, plus the Exchange facade that ties them
together.
"""

from .asset_registry import Asset, AssetRegistry
from .errors import ExchangeError
from .exchange import Exchange
from .ledger import BalanceLedger
from .matching_engine import MatchingEngine
from .order import Order, Trade
from .order_book import Market, OrderBook, PriceLevel
from .order_types import OrderSide, OrderStatus, OrderType
from .transfers import AssetTransfer, InMemoryToken

__all__ = [
    "Asset",
    "AssetRegistry",
    "AssetTransfer",
    "BalanceLedger",
    "Exchange",
    "ExchangeError",
    "InMemoryToken",
    "Market",
    "MatchingEngine",
    "Order",
    "OrderBook",
    "OrderSide",
    "OrderStatus",
    "OrderType",
    "PriceLevel",
    "Trade",
]
