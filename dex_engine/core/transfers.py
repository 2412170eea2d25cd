"""
External asset transfer handles.

The exchange never holds value itself: every registered asset points at a
transfer handle that moves units into custody on deposit and back out on
withdrawal. Real deployments wrap a token contract or a custodian API; the
in-memory token here backs tests, benchmarks and the development server.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict

from .errors import TransferError

logger = logging.getLogger(__name__)


class AssetTransfer(ABC):
    """
    Interface for the external ledger of one asset.

    Implementations must be atomic: a transfer either completes or raises
    TransferError without moving anything.
    """

    @abstractmethod
    def transfer_in(self, account: str, amount: int) -> None:
        """Move `amount` from the account's external balance into custody."""

    @abstractmethod
    def transfer_out(self, account: str, amount: int) -> None:
        """Move `amount` out of custody to the account's external balance."""


class InMemoryToken(AssetTransfer):
    """
    In-memory fungible token for testing and development.

    Tracks external balances per account plus the units held in custody,
    like a mock ERC-20 with a faucet.
    """

    def __init__(self, symbol: str):
        self.symbol = symbol
        self.balances: Dict[str, int] = {}
        self.custody = 0
        self._lock = threading.Lock()

    def faucet(self, account: str, amount: int) -> None:
        """Mint `amount` units to an account's external balance."""
        with self._lock:
            self.balances[account] = self.balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    @property
    def total_supply(self) -> int:
        return sum(self.balances.values()) + self.custody

    def transfer_in(self, account: str, amount: int) -> None:
        with self._lock:
            balance = self.balances.get(account, 0)
            if balance < amount:
                raise TransferError(
                    f"{account} holds {balance} {self.symbol}, cannot move {amount} into custody"
                )
            self.balances[account] = balance - amount
            self.custody += amount
        logger.debug(f"{self.symbol}: {amount} moved into custody from {account}")

    def transfer_out(self, account: str, amount: int) -> None:
        with self._lock:
            if self.custody < amount:
                raise TransferError(
                    f"custody holds {self.custody} {self.symbol}, cannot release {amount}"
                )
            self.custody -= amount
            self.balances[account] = self.balances.get(account, 0) + amount
        logger.debug(f"{self.symbol}: {amount} released from custody to {account}")

    def __repr__(self) -> str:
        return f"InMemoryToken(symbol={self.symbol}, custody={self.custody})"
