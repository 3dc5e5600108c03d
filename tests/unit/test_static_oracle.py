"""Unit tests for the settable in-memory oracle."""
from __future__ import annotations

import pytest

from synth_engine.errors import PriceUnavailable
from synth_engine.models import OracleQuote
from synth_engine.oracles import StaticOracle


class TestStaticOracle:
    def test_initial_prices_use_eight_decimals(self) -> None:
        oracle = StaticOracle({"WETH": 2000 * 10**8})
        assert oracle.latest_price("WETH") == OracleQuote(2000 * 10**8, 8)

    def test_set_price_replaces_quote(self) -> None:
        oracle = StaticOracle({"WETH": 2000 * 10**8})
        oracle.set_price("WETH", 18 * 10**18, decimals=18)
        assert oracle.latest_price("WETH") == OracleQuote(18 * 10**18, 18)

    def test_missing_price(self) -> None:
        with pytest.raises(PriceUnavailable):
            StaticOracle().latest_price("WETH")
