"""Unit tests for USD valuation and health factor arithmetic."""
from __future__ import annotations

import pytest

from synth_engine.constants import MAX_HEALTH_FACTOR, MIN_HEALTH_FACTOR
from synth_engine.errors import (
    AssetNotSupported,
    HealthFactorBelowThreshold,
    InvalidPrice,
)
from synth_engine.ledger import CollateralLedger, DebtLedger
from synth_engine.models import OracleQuote
from synth_engine.oracles import StaticOracle
from synth_engine.solvency import (
    SolvencyCalculator,
    calculate_health_factor,
    scale_price,
)


@pytest.fixture()
def oracle() -> StaticOracle:
    return StaticOracle({"X": 2000 * 10**8})


@pytest.fixture()
def ledgers() -> tuple[CollateralLedger, DebtLedger]:
    return CollateralLedger(), DebtLedger()


@pytest.fixture()
def calc(
    oracle: StaticOracle, ledgers: tuple[CollateralLedger, DebtLedger]
) -> SolvencyCalculator:
    collateral, debts = ledgers
    return SolvencyCalculator(collateral, debts, {"X": oracle})


class TestScalePrice:
    def test_eight_decimal_feed(self) -> None:
        assert scale_price(OracleQuote(2000 * 10**8, 8)) == 2000 * 10**18

    def test_eighteen_decimal_feed(self) -> None:
        assert scale_price(OracleQuote(5 * 10**18, 18)) == 5 * 10**18

    def test_more_than_eighteen_decimals(self) -> None:
        assert scale_price(OracleQuote(3 * 10**20, 20)) == 3 * 10**18

    def test_negative_expo_style_decimals(self) -> None:
        assert scale_price(OracleQuote(7, -2)) == 700 * 10**18


class TestCalculateHealthFactor:
    def test_zero_debt_is_maximal(self) -> None:
        assert calculate_health_factor(0, 0) == MAX_HEALTH_FACTOR
        assert calculate_health_factor(0, 10**30) == MAX_HEALTH_FACTOR

    def test_two_hundred_percent_is_minimum(self) -> None:
        assert calculate_health_factor(100 * 10**18, 200 * 10**18) == MIN_HEALTH_FACTOR

    def test_threshold_applied_before_scaling(self) -> None:
        # 3 * 50 // 100 == 1, then * 1e18 // 1
        assert calculate_health_factor(1, 3) == 10**18


class TestValuation:
    def test_usd_value(self, calc: SolvencyCalculator) -> None:
        assert calc.usd_value("X", 15 * 10**18) == 30_000 * 10**18

    def test_token_amount_from_usd(self, calc: SolvencyCalculator) -> None:
        assert calc.token_amount_from_usd("X", 100 * 10**18) == 5 * 10**16

    def test_unknown_asset(self, calc: SolvencyCalculator) -> None:
        with pytest.raises(AssetNotSupported):
            calc.usd_value("NOPE", 1)

    def test_non_positive_price(self, calc: SolvencyCalculator, oracle: StaticOracle) -> None:
        oracle.set_price("X", 0)
        with pytest.raises(InvalidPrice):
            calc.token_amount_from_usd("X", 100)


class TestHealthFactor:
    def test_scenario_healthy(
        self, calc: SolvencyCalculator, ledgers: tuple[CollateralLedger, DebtLedger]
    ) -> None:
        collateral, debts = ledgers
        collateral.increase("u", "X", 10 * 10**18)
        debts.increase("u", 5000 * 10**18)
        assert calc.collateral_value_usd("u") == 20_000 * 10**18
        assert calc.health_factor("u") == 2 * 10**18
        calc.assert_solvent("u")

    def test_scenario_price_drop(
        self,
        calc: SolvencyCalculator,
        ledgers: tuple[CollateralLedger, DebtLedger],
        oracle: StaticOracle,
    ) -> None:
        collateral, debts = ledgers
        collateral.increase("u", "X", 10 * 10**18)
        debts.increase("u", 5000 * 10**18)
        oracle.set_price("X", 300 * 10**8)
        assert calc.collateral_value_usd("u") == 3000 * 10**18
        assert calc.health_factor("u") == 3 * 10**17
        with pytest.raises(HealthFactorBelowThreshold) as exc:
            calc.assert_solvent("u")
        assert exc.value.health_factor == 3 * 10**17
        assert exc.value.user == "u"

    def test_no_debt_is_solvent(self, calc: SolvencyCalculator) -> None:
        assert calc.health_factor("nobody") == MAX_HEALTH_FACTOR
        calc.assert_solvent("nobody")

    def test_account_information(
        self, calc: SolvencyCalculator, ledgers: tuple[CollateralLedger, DebtLedger]
    ) -> None:
        collateral, debts = ledgers
        collateral.increase("u", "X", 10**18)
        debts.increase("u", 7)
        info = calc.account_information("u")
        assert info.total_debt == 7
        assert info.collateral_value_usd == 2000 * 10**18
