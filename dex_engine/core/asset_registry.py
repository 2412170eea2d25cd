"""
Asset registry for the exchange engine.

Maps fixed-width asset symbols to their external transfer handles and
answers which assets are tradable and which one is the quote asset.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import DuplicateAsset, UnknownAsset
from .transfers import AssetTransfer

logger = logging.getLogger(__name__)

# Symbols are stored like a bytes32 ticker
MAX_SYMBOL_BYTES = 32


def validate_symbol(symbol: str) -> str:
    """
    Validate an asset symbol.

    Args:
        symbol: Symbol to validate

    Returns:
        The symbol unchanged

    Raises:
        ValueError: If the symbol is empty, not ASCII or wider than 32 bytes
    """
    if not isinstance(symbol, str) or not symbol:
        raise ValueError("Symbol must be a non-empty string")
    try:
        encoded = symbol.encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"Symbol must be ASCII: {symbol!r}")
    if len(encoded) > MAX_SYMBOL_BYTES:
        raise ValueError(f"Symbol longer than {MAX_SYMBOL_BYTES} bytes: {symbol}")
    return symbol


@dataclass(frozen=True)
class Asset:
    """A registered asset and the handle that moves it in and out of custody."""

    symbol: str
    handle: AssetTransfer

    def to_dict(self) -> dict:
        return {"symbol": self.symbol, "handle": type(self.handle).__name__}


class AssetRegistry:
    """
    Registry of tradable assets.

    The first registered asset becomes the quote asset unless one is
    designated explicitly. The quote asset settles every trade and can
    never be traded itself.
    """

    def __init__(self, quote_symbol: Optional[str] = None):
        """
        Initialize the registry.

        Args:
            quote_symbol: Symbol that will be the quote asset once registered.
                Defaults to whichever asset is registered first.
        """
        self._assets: Dict[str, Asset] = {}
        self._quote_symbol = validate_symbol(quote_symbol) if quote_symbol else None

    def register(self, symbol: str, handle: AssetTransfer, quote: bool = False) -> Asset:
        """
        Register a tradable asset.

        Args:
            symbol: Asset symbol
            handle: External transfer handle for the asset
            quote: Designate this asset as the quote asset

        Returns:
            The registered Asset

        Raises:
            DuplicateAsset: If the symbol is already registered
            ValueError: If the symbol is invalid, or a second quote asset is
                designated after the quote asset was registered
        """
        validate_symbol(symbol)
        if symbol in self._assets:
            raise DuplicateAsset(symbol)

        if quote and self._quote_symbol is not None and self._quote_symbol != symbol:
            if self._quote_symbol in self._assets:
                raise ValueError(f"Quote asset already registered: {self._quote_symbol}")
            logger.warning(f"Quote asset redesignated from {self._quote_symbol} to {symbol}")
            self._quote_symbol = symbol
        elif quote or self._quote_symbol is None:
            self._quote_symbol = symbol

        asset = Asset(symbol=symbol, handle=handle)
        self._assets[symbol] = asset
        logger.info(f"Registered asset {symbol}{' (quote)' if self.is_quote(symbol) else ''}")
        return asset

    def lookup(self, symbol: str) -> Optional[Asset]:
        """Return the asset registered under `symbol`, or None."""
        return self._assets.get(symbol)

    def resolve(self, symbol: str) -> AssetTransfer:
        """
        Resolve a symbol to its transfer handle.

        Raises:
            UnknownAsset: If the symbol is not registered
        """
        asset = self.lookup(symbol)
        if asset is None:
            raise UnknownAsset(symbol)
        return asset.handle

    def is_quote(self, symbol: str) -> bool:
        return symbol == self._quote_symbol and symbol in self._assets

    @property
    def quote_symbol(self) -> Optional[str]:
        """Symbol of the quote asset, None until it is registered."""
        if self._quote_symbol in self._assets:
            return self._quote_symbol
        return None

    def assets(self) -> List[Asset]:
        """All registered assets in registration order."""
        return list(self._assets.values())

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._assets

    def __len__(self) -> int:
        return len(self._assets)
