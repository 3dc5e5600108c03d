"""Collateral and debt bookkeeping. Pure state, integer arithmetic only."""
from __future__ import annotations

from collections import defaultdict

from .errors import InsufficientCollateral, InsufficientDebt


class CollateralLedger:
    """Per-user, per-asset collateral held in engine custody."""

    def __init__(self) -> None:
        self._positions: defaultdict[str, dict[str, int]] = defaultdict(dict)

    def balance(self, user: str, asset: str) -> int:
        return self._positions.get(user, {}).get(asset, 0)

    def increase(self, user: str, asset: str, amount: int) -> None:
        self._positions[user][asset] = self.balance(user, asset) + amount

    def decrease(self, user: str, asset: str, amount: int) -> None:
        """Remove collateral, raising instead of going negative."""
        available = self.balance(user, asset)
        if amount > available:
            raise InsufficientCollateral(user, amount, available)
        self._positions[user][asset] = available - amount

    def total(self, asset: str) -> int:
        """Sum of every user's position in ``asset``."""
        return sum(assets.get(asset, 0) for assets in self._positions.values())

    def users(self) -> list[str]:
        return [user for user, assets in self._positions.items() if any(assets.values())]

    def snapshot(self) -> dict[str, dict[str, int]]:
        return {user: dict(assets) for user, assets in self._positions.items()}

    def restore(self, snapshot: dict[str, dict[str, int]]) -> None:
        self._positions = defaultdict(
            dict, {user: dict(assets) for user, assets in snapshot.items()}
        )


class DebtLedger:
    """Synthetic debt attributed to each minter."""

    def __init__(self) -> None:
        self._debts: dict[str, int] = {}

    def debt(self, user: str) -> int:
        return self._debts.get(user, 0)

    def increase(self, user: str, amount: int) -> None:
        self._debts[user] = self.debt(user) + amount

    def decrease(self, user: str, amount: int) -> None:
        outstanding = self.debt(user)
        if amount > outstanding:
            raise InsufficientDebt(user, amount, outstanding)
        self._debts[user] = outstanding - amount

    def total(self) -> int:
        return sum(self._debts.values())

    def users(self) -> list[str]:
        return [user for user, amount in self._debts.items() if amount]

    def snapshot(self) -> dict[str, int]:
        return dict(self._debts)

    def restore(self, snapshot: dict[str, int]) -> None:
        self._debts = dict(snapshot)
