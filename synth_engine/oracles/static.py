"""Settable in-memory oracle for simulations and tests."""
from __future__ import annotations

from ..errors import PriceUnavailable
from ..models import OracleQuote

DEFAULT_DECIMALS = 8


class StaticOracle:
    """Holds one quote per asset until it is replaced."""

    def __init__(self, prices: dict[str, int] | None = None, decimals: int = DEFAULT_DECIMALS) -> None:
        self._quotes: dict[str, OracleQuote] = {}
        for asset, price in (prices or {}).items():
            self.set_price(asset, price, decimals)

    def set_price(self, asset: str, price: int, decimals: int = DEFAULT_DECIMALS) -> None:
        self._quotes[asset] = OracleQuote(price=price, decimals=decimals)

    def latest_price(self, asset: str) -> OracleQuote:
        try:
            return self._quotes[asset]
        except KeyError:
            raise PriceUnavailable(f"No price set for {asset}") from None
