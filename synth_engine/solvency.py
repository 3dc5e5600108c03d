"""Solvency calculator — USD valuation and health factor from ledger + oracle.

All values are 18-decimal fixed-point integers. Oracle prices are scaled up
to 18 decimals before multiplying, and every product is formed before the
division that follows it.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from .constants import (
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MAX_HEALTH_FACTOR,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from .errors import AssetNotSupported, HealthFactorBelowThreshold, InvalidPrice
from .interfaces.price_oracle import PriceOracle
from .ledger import CollateralLedger, DebtLedger
from .models import AccountInformation, OracleQuote

logger = logging.getLogger(__name__)

_PRECISION_DECIMALS = 18


def scale_price(quote: OracleQuote) -> int:
    """Bring an oracle price to 18-decimal precision."""
    shift = _PRECISION_DECIMALS - quote.decimals
    if shift >= 0:
        return quote.price * 10**shift
    return quote.price // 10**-shift


def calculate_health_factor(total_debt: int, collateral_value_usd: int) -> int:
    """Health factor for a given debt and collateral value.

    health_factor = (collateral * threshold / precision) * 1e18 / debt

    A position without debt reports ``MAX_HEALTH_FACTOR``.
    """
    if total_debt == 0:
        return MAX_HEALTH_FACTOR
    collateral_adjusted = (
        collateral_value_usd * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION
    )
    return collateral_adjusted * PRECISION // total_debt


class SolvencyCalculator:
    """Values collateral and debt for the engine. Never mutates state."""

    def __init__(
        self,
        collateral: CollateralLedger,
        debts: DebtLedger,
        price_feeds: Mapping[str, PriceOracle],
    ) -> None:
        self._collateral = collateral
        self._debts = debts
        self._price_feeds = price_feeds

    def _scaled_price(self, asset: str) -> int:
        feed = self._price_feeds.get(asset)
        if feed is None:
            raise AssetNotSupported(asset)
        quote = feed.latest_price(asset)
        if quote.price <= 0:
            raise InvalidPrice(asset, quote.price)
        return scale_price(quote)

    def usd_value(self, asset: str, amount: int) -> int:
        return self._scaled_price(asset) * amount // PRECISION

    def token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return usd_amount * PRECISION // self._scaled_price(asset)

    def collateral_value_usd(self, user: str) -> int:
        total = 0
        for asset in self._price_feeds:
            amount = self._collateral.balance(user, asset)
            if amount:
                total += self.usd_value(asset, amount)
        return total

    def account_information(self, user: str) -> AccountInformation:
        return AccountInformation(
            total_debt=self._debts.debt(user),
            collateral_value_usd=self.collateral_value_usd(user),
        )

    def health_factor(self, user: str) -> int:
        info = self.account_information(user)
        return calculate_health_factor(info.total_debt, info.collateral_value_usd)

    def assert_solvent(self, user: str) -> None:
        health_factor = self.health_factor(user)
        if health_factor < MIN_HEALTH_FACTOR:
            logger.debug("Solvency check failed for %s: %d", user, health_factor)
            raise HealthFactorBelowThreshold(user, health_factor)
