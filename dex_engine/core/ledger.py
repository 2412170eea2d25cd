"""
Balance ledger for custodied assets.

Holds the per-account, per-asset balance of everything deposited into
custody, together with the part of each balance committed to resting
orders. Only the unlocked remainder can be debited.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, Iterator, Tuple

from .errors import InsufficientBalance
from .fixed_point import checked_add

logger = logging.getLogger(__name__)

BalanceKey = Tuple[str, str]  # (account, asset)


class BalanceLedger:
    """
    Per (account, asset) balances with order commitments.

    Invariant for every key: 0 <= locked <= balance.
    """

    def __init__(self):
        self._balances: Dict[BalanceKey, int] = defaultdict(int)
        self._locked: Dict[BalanceKey, int] = defaultdict(int)
        self._lock = threading.Lock()

    def credit(self, account: str, asset: str, amount: int) -> int:
        """
        Increase a balance.

        Args:
            account: Account identifier
            asset: Asset symbol
            amount: Non-negative amount to add

        Returns:
            The new balance
        """
        with self._lock:
            key = (account, asset)
            self._balances[key] = checked_add(self._balances[key], amount)
            return self._balances[key]

    def debit(self, account: str, asset: str, amount: int) -> int:
        """
        Decrease a balance by `amount` of its unlocked part.

        Returns:
            The new balance

        Raises:
            InsufficientBalance: If amount exceeds the available balance
        """
        with self._lock:
            key = (account, asset)
            available = self._balances[key] - self._locked[key]
            if amount > available:
                raise InsufficientBalance(asset, amount, available)
            self._balances[key] -= amount
            return self._balances[key]

    def lock(self, account: str, asset: str, amount: int) -> None:
        """
        Commit part of the available balance to a resting order.

        Raises:
            InsufficientBalance: If amount exceeds the available balance
        """
        with self._lock:
            key = (account, asset)
            available = self._balances[key] - self._locked[key]
            if amount > available:
                raise InsufficientBalance(asset, amount, available)
            self._locked[key] += amount

    def release(self, account: str, asset: str, amount: int) -> None:
        """Return a committed amount to the available balance."""
        with self._lock:
            key = (account, asset)
            if amount > self._locked[key]:
                raise ValueError(
                    f"Cannot release {amount} {asset} for {account}: only {self._locked[key]} locked"
                )
            self._locked[key] -= amount

    def balance_of(self, account: str, asset: str) -> int:
        """Total balance, committed part included."""
        return self._balances.get((account, asset), 0)

    def locked_of(self, account: str, asset: str) -> int:
        return self._locked.get((account, asset), 0)

    def available_of(self, account: str, asset: str) -> int:
        """Balance that can be withdrawn or committed to a new order."""
        key = (account, asset)
        return self._balances.get(key, 0) - self._locked.get(key, 0)

    def total_supply(self, asset: str) -> int:
        """Sum of every account's balance of an asset."""
        return sum(amount for (_, held), amount in self._balances.items() if held == asset)

    def items(self) -> Iterator[Tuple[BalanceKey, int]]:
        """Iterate over non-zero (account, asset) balances."""
        return ((key, amount) for key, amount in list(self._balances.items()) if amount)

    def accounts(self) -> set:
        return {account for (account, _), amount in self._balances.items() if amount}
