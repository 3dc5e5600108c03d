"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OracleQuote:
    """Latest price for one collateral asset, as an integer with decimals."""

    price: int
    decimals: int
    publish_time: int = 0


@dataclass(frozen=True)
class AccountInformation:
    """Debt and USD collateral value of a user, both 18-decimal fixed point."""

    total_debt: int
    collateral_value_usd: int


# ---------------------------------------------------------------------------
# Events: appended to the engine log only when an operation commits
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollateralDeposited:
    user: str
    asset: str
    amount: int


@dataclass(frozen=True)
class CollateralRedeemed:
    redeemed_from: str
    redeemed_to: str
    asset: str
    amount: int


@dataclass(frozen=True)
class DebtMinted:
    user: str
    amount: int


@dataclass(frozen=True)
class DebtBurned:
    on_behalf_of: str
    payer: str
    amount: int


@dataclass(frozen=True)
class PositionLiquidated:
    """Outcome of a successful liquidation."""

    liquidator: str
    user: str
    asset: str
    debt_covered: int
    collateral_seized: int
    bonus: int
    starting_health_factor: int
    ending_health_factor: int
