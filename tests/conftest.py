"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from synth_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    PriceOracleConfig,
    PythConfig,
)
from synth_engine.engine import Engine
from synth_engine.oracles import StaticOracle
from synth_engine.tokens import InMemoryToken

ENGINE = "engine"
USER = "user"
LIQUIDATOR = "liquidator"

ETH_USD_PRICE = 2000 * 10**8
BTC_USD_PRICE = 1000 * 10**8

COLLATERAL_AMOUNT = 10 * 10**18
AMOUNT_TO_MINT = 100 * 10**18
COLLATERAL_TO_COVER = 20 * 10**18
STARTING_BALANCE = 10 * 10**18


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def oracle() -> StaticOracle:
    return StaticOracle({"WETH": ETH_USD_PRICE, "WBTC": BTC_USD_PRICE})


@pytest.fixture()
def weth() -> InMemoryToken:
    token = InMemoryToken("WETH")
    token.mint_to(USER, STARTING_BALANCE)
    return token


@pytest.fixture()
def wbtc() -> InMemoryToken:
    token = InMemoryToken("WBTC")
    token.mint_to(USER, STARTING_BALANCE)
    return token


@pytest.fixture()
def synthetic() -> InMemoryToken:
    return InMemoryToken("DSC", minter=ENGINE)


@pytest.fixture()
def engine(
    oracle: StaticOracle,
    weth: InMemoryToken,
    wbtc: InMemoryToken,
    synthetic: InMemoryToken,
) -> Engine:
    return Engine(
        [weth.bind(ENGINE), wbtc.bind(ENGINE)],
        [oracle, oracle],
        synthetic.bind(ENGINE),
        address=ENGINE,
    )


@pytest.fixture()
def collateralized_user(engine: Engine, weth: InMemoryToken) -> str:
    """USER with 10 WETH deposited and 100 DSC minted."""
    weth.approve(USER, ENGINE, COLLATERAL_AMOUNT)
    engine.deposit_collateral_and_mint(USER, "WETH", COLLATERAL_AMOUNT, AMOUNT_TO_MINT)
    return USER


@pytest.fixture()
def funded_liquidator(
    engine: Engine, weth: InMemoryToken, synthetic: InMemoryToken
) -> str:
    """LIQUIDATOR with 20 WETH deposited, 100 DSC minted and approved."""
    weth.mint_to(LIQUIDATOR, COLLATERAL_TO_COVER)
    weth.approve(LIQUIDATOR, ENGINE, COLLATERAL_TO_COVER)
    engine.deposit_collateral_and_mint(
        LIQUIDATOR, "WETH", COLLATERAL_TO_COVER, AMOUNT_TO_MINT
    )
    synthetic.approve(LIQUIDATOR, ENGINE, AMOUNT_TO_MINT)
    return LIQUIDATOR


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        max_price_age_seconds=60,
    )


@pytest.fixture()
def sample_app_config(sample_pyth_config: PythConfig) -> AppConfig:
    return AppConfig(
        engine=EngineConfig(address="engine", check_liquidator_solvency=False),
        collateral=(
            CollateralConfig(symbol="ETH", feed_id="aaa111"),
            CollateralConfig(symbol="BTC", feed_id="bbb222"),
        ),
        price_oracle=PriceOracleConfig(provider="pyth", pyth=sample_pyth_config),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      address: engine-1
      check_liquidator_solvency: true
    collateral:
      - symbol: eth
        feed_id: "aaa"
      - symbol: BTC
        feed_id: "bbb"
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        max_price_age_seconds: 30
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Scenario fixture
# ---------------------------------------------------------------------------

SAMPLE_SCENARIO = textwrap.dedent("""\
    collateral:
      - symbol: ETH
        price: 2000
        decimals: 8
    users:
      alice: {ETH: 10}
      bob: {ETH: 100}
    steps:
      - {op: deposit_and_mint, user: alice, asset: ETH, amount: 10, debt: 5000}
      - {op: deposit_and_mint, user: bob, asset: ETH, amount: 100, debt: 5000}
      - {op: set_price, asset: ETH, price: 300}
      - {op: liquidate, user: bob, asset: ETH, target: alice, debt: 1000}
""")


@pytest.fixture()
def sample_scenario_path(tmp_path: Path) -> Path:
    path = tmp_path / "scenario.yaml"
    path.write_text(SAMPLE_SCENARIO)
    return path
