"""Scenario simulation — drives an engine with in-memory tokens from YAML."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ..config import EngineConfig, build_engine
from ..constants import MIN_HEALTH_FACTOR, PRECISION
from ..engine import Engine
from ..errors import EngineError
from ..oracles import StaticOracle
from ..tokens import InMemoryToken, TokenError

logger = logging.getLogger(__name__)

SYNTHETIC_SYMBOL = "USD"

# op name -> required step keys
_STEP_KEYS: dict[str, tuple[str, ...]] = {
    "deposit": ("user", "asset", "amount"),
    "deposit_and_mint": ("user", "asset", "amount", "debt"),
    "redeem": ("user", "asset", "amount"),
    "redeem_for_burn": ("user", "asset", "amount", "debt"),
    "mint": ("user", "debt"),
    "burn": ("user", "debt"),
    "liquidate": ("user", "asset", "target", "debt"),
    "set_price": ("asset", "price"),
    "transfer_synthetic": ("user", "to", "amount"),
}

# ---------------------------------------------------------------------------
# Scenario model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScenarioAsset:
    symbol: str
    price: int
    decimals: int = 8


@dataclass(frozen=True)
class ScenarioStep:
    op: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Scenario:
    engine: EngineConfig = field(default_factory=EngineConfig)
    assets: tuple[ScenarioAsset, ...] = ()
    wallets: dict[str, dict[str, int]] = field(default_factory=dict)
    steps: tuple[ScenarioStep, ...] = ()


@dataclass(frozen=True)
class StepResult:
    index: int
    op: str
    ok: bool
    error: str = ""


@dataclass(frozen=True)
class PositionReport:
    user: str
    collateral_value_usd: int
    total_debt: int
    health_factor: int

    @property
    def status(self) -> str:
        if self.total_debt == 0:
            return "No debt"
        if self.health_factor >= MIN_HEALTH_FACTOR:
            return "Healthy"
        return "Liquidatable"


@dataclass(frozen=True)
class SimulationResult:
    steps: tuple[StepResult, ...] = ()
    positions: tuple[PositionReport, ...] = ()

    @property
    def failed(self) -> tuple[StepResult, ...]:
        return tuple(s for s in self.steps if not s.ok)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def to_fixed(value: Any, decimals: int = 18) -> int:
    """Convert a whole-unit amount like ``"0.05"`` to base units exactly."""
    try:
        scaled = Decimal(str(value)) * (Decimal(10) ** decimals)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value!r} has more than {decimals} decimals")
    return int(scaled)


def _build_assets(raw: list[dict[str, Any]]) -> tuple[ScenarioAsset, ...]:
    assets: list[ScenarioAsset] = []
    for a in raw:
        decimals = int(a.get("decimals", 8))
        assets.append(
            ScenarioAsset(
                symbol=str(a["symbol"]).upper(),
                price=to_fixed(a["price"], decimals),
                decimals=decimals,
            )
        )
    return tuple(assets)


def _build_wallets(raw: dict[str, Any]) -> dict[str, dict[str, int]]:
    return {
        str(user): {str(sym).upper(): to_fixed(amt) for sym, amt in (holdings or {}).items()}
        for user, holdings in raw.items()
    }


def _build_steps(raw: list[dict[str, Any]]) -> tuple[ScenarioStep, ...]:
    steps: list[ScenarioStep] = []
    for i, s in enumerate(raw):
        params = dict(s)
        op = params.pop("op", None)
        if op not in _STEP_KEYS:
            raise ValueError(f"Step {i}: unknown op {op!r}")
        missing = [k for k in _STEP_KEYS[op] if k not in params]
        if missing:
            raise ValueError(f"Step {i} ({op}): missing {', '.join(missing)}")
        if "asset" in params:
            params["asset"] = str(params["asset"]).upper()
        steps.append(ScenarioStep(op=op, params=params))
    return tuple(steps)


def parse_scenario(
    raw: dict[str, Any], engine_defaults: EngineConfig | None = None
) -> Scenario:
    """Build a scenario; its ``engine`` section overrides ``engine_defaults``."""
    scenario = Scenario(
        engine=build_engine(raw.get("engine", {}), engine_defaults),
        assets=_build_assets(raw.get("collateral", [])),
        wallets=_build_wallets(raw.get("users", {})),
        steps=_build_steps(raw.get("steps", [])),
    )
    if not scenario.assets:
        raise ValueError("Scenario needs at least one collateral asset")
    return scenario


def load_scenario(
    path: str | Path, engine_defaults: EngineConfig | None = None
) -> Scenario:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    logger.info("Scenario loaded from %s", path)
    return parse_scenario(raw, engine_defaults)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class Simulation:
    """An engine wired to an in-memory oracle and token ledgers."""

    def __init__(self, scenario: Scenario) -> None:
        self.scenario = scenario
        address = scenario.engine.address

        self.oracle = StaticOracle()
        self.tokens: dict[str, InMemoryToken] = {}
        for asset in scenario.assets:
            self.oracle.set_price(asset.symbol, asset.price, asset.decimals)
            self.tokens[asset.symbol] = InMemoryToken(asset.symbol)

        self.synthetic = InMemoryToken(SYNTHETIC_SYMBOL, minter=address)
        self.engine = Engine(
            [token.bind(address) for token in self.tokens.values()],
            [self.oracle] * len(self.tokens),
            self.synthetic.bind(address),
            address=address,
            check_liquidator_solvency=scenario.engine.check_liquidator_solvency,
        )

        for user, holdings in scenario.wallets.items():
            for symbol, amount in holdings.items():
                token = self.tokens.get(symbol)
                if token is None:
                    raise ValueError(f"Wallet of {user} holds unknown asset {symbol}")
                token.mint_to(user, amount)

    def _approve_collateral(self, owner: str, asset: str, amount: int) -> None:
        token = self.tokens.get(asset)
        if token is not None:
            token.approve(owner, self.engine.address, amount)

    def _approve_synthetic(self, owner: str, amount: int) -> None:
        self.synthetic.approve(owner, self.engine.address, amount)

    def apply(self, step: ScenarioStep) -> None:
        """Execute one step; engine failures propagate."""
        p = step.params
        approve = p.get("approve", True)
        user = p.get("user", "")

        if step.op == "set_price":
            decimals = int(p.get("decimals", self._decimals(p["asset"])))
            self.oracle.set_price(p["asset"], to_fixed(p["price"], decimals), decimals)
        elif step.op == "deposit":
            amount = to_fixed(p["amount"])
            if approve:
                self._approve_collateral(user, p["asset"], amount)
            self.engine.deposit_collateral(user, p["asset"], amount)
        elif step.op == "deposit_and_mint":
            amount = to_fixed(p["amount"])
            if approve:
                self._approve_collateral(user, p["asset"], amount)
            self.engine.deposit_collateral_and_mint(
                user, p["asset"], amount, to_fixed(p["debt"])
            )
        elif step.op == "redeem":
            self.engine.redeem_collateral(user, p["asset"], to_fixed(p["amount"]))
        elif step.op == "redeem_for_burn":
            debt = to_fixed(p["debt"])
            if approve:
                self._approve_synthetic(user, debt)
            self.engine.redeem_collateral_for_burn(
                user, p["asset"], to_fixed(p["amount"]), debt
            )
        elif step.op == "mint":
            self.engine.mint(user, to_fixed(p["debt"]))
        elif step.op == "burn":
            debt = to_fixed(p["debt"])
            if approve:
                self._approve_synthetic(user, debt)
            self.engine.burn(user, debt)
        elif step.op == "liquidate":
            debt = to_fixed(p["debt"])
            if approve:
                self._approve_synthetic(user, debt)
            self.engine.liquidate(user, p["asset"], p["target"], debt)
        elif step.op == "transfer_synthetic":
            if not self.synthetic.move(user, p["to"], to_fixed(p["amount"])):
                raise TokenError(f"{user} cannot transfer {p['amount']} {SYNTHETIC_SYMBOL}")

    def _decimals(self, asset: str) -> int:
        for a in self.scenario.assets:
            if a.symbol == asset:
                return a.decimals
        return 8

    def positions(self) -> tuple[PositionReport, ...]:
        users = list(self.scenario.wallets) + self.engine.users()
        reports: list[PositionReport] = []
        for user in dict.fromkeys(users):
            info = self.engine.account_information(user)
            reports.append(
                PositionReport(
                    user=user,
                    collateral_value_usd=info.collateral_value_usd,
                    total_debt=info.total_debt,
                    health_factor=self.engine.health_factor(user),
                )
            )
        return tuple(reports)

    def run(self) -> SimulationResult:
        results: list[StepResult] = []
        for i, step in enumerate(self.scenario.steps):
            # Name of the error the step is meant to raise, if any.
            expected = step.params.get("expect")
            try:
                self.apply(step)
            except (EngineError, TokenError) as e:
                error = f"{type(e).__name__}: {e}"
                if type(e).__name__ == expected:
                    logger.info("Step %d (%s) failed as expected: %s", i, step.op, e)
                    results.append(StepResult(index=i, op=step.op, ok=True, error=error))
                else:
                    logger.warning("Step %d (%s) failed: %s", i, step.op, e)
                    results.append(StepResult(index=i, op=step.op, ok=False, error=error))
                continue

            if expected:
                logger.warning("Step %d (%s) succeeded, expected %s", i, step.op, expected)
                results.append(
                    StepResult(index=i, op=step.op, ok=False, error=f"expected {expected}")
                )
            else:
                logger.debug("Step %d (%s) ok", i, step.op)
                results.append(StepResult(index=i, op=step.op, ok=True))

        return SimulationResult(steps=tuple(results), positions=self.positions())


def run_scenario(scenario: Scenario) -> SimulationResult:
    return Simulation(scenario).run()


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _usd(value: int) -> str:
    return f"${Decimal(value) / PRECISION:,.2f}"


def _health(value: int) -> str:
    if value >= 2**255:
        return "∞"
    return f"{Decimal(value) / PRECISION:.4f}"


def _status_badge(status: str) -> str:
    return {
        "Liquidatable": "🚨 LIQUIDATABLE",
        "Healthy": "✅ Healthy",
    }.get(status, "➖ No debt")


def format_report(result: SimulationResult) -> str:
    """Human-readable summary of a simulation run."""
    lines = ["📋 Simulation Report", ""]
    for s in result.steps:
        mark = "✓" if s.ok else "✗"
        line = f"  {mark} [{s.index}] {s.op}"
        if s.error:
            line += f" — {s.error}"
        lines.append(line)

    lines.append("")
    for p in result.positions:
        lines.append(
            f"{p.user} · {_status_badge(p.status)}\n"
            f"  Collateral: {_usd(p.collateral_value_usd)}\n"
            f"  Debt: {_usd(p.total_debt)}\n"
            f"  HF: {_health(p.health_factor)}"
        )

    lines.append("")
    lines.append(f"{datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC")
    return "\n".join(lines)
