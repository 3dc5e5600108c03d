"""Price oracle protocol — price feed abstraction."""
from typing import Protocol

from ..models import OracleQuote


class PriceOracle(Protocol):
    """Read-only source of the latest price for a collateral asset."""

    def latest_price(self, asset: str) -> OracleQuote: ...
