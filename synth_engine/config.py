"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    address: str = "engine"
    check_liquidator_solvency: bool = False


@dataclass(frozen=True)
class CollateralConfig:
    symbol: str = ""
    feed_id: str = ""


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    # 0 disables the staleness check.
    max_price_age_seconds: int = 0


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    collateral: tuple[CollateralConfig, ...] = ()
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)

    @property
    def feeds(self) -> dict[str, str]:
        """Pyth feed id per collateral symbol."""
        return {c.symbol: c.feed_id for c in self.collateral}


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _as_bool(value: Any) -> bool:
    # Interpolated env values arrive as strings.
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def build_engine(
    raw: dict[str, Any], defaults: EngineConfig | None = None
) -> EngineConfig:
    """Engine settings from ``raw``; missing keys fall back to ``defaults``."""
    base = defaults or EngineConfig()
    return EngineConfig(
        address=str(raw.get("address", base.address)),
        check_liquidator_solvency=_as_bool(
            raw.get("check_liquidator_solvency", base.check_liquidator_solvency)
        ),
    )


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    collateral: list[CollateralConfig] = []
    for c in raw:
        collateral.append(
            CollateralConfig(
                symbol=str(c.get("symbol", "")).upper(),
                feed_id=str(c.get("feed_id", "")),
            )
        )
    return tuple(collateral)


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            max_price_age_seconds=int(pyth_raw.get("max_price_age_seconds", 0) or 0),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=build_engine(raw.get("engine", {})),
        collateral=_build_collateral(raw.get("collateral", [])),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.collateral:
        raise ValueError("At least one collateral asset must be configured")

    seen: set[str] = set()
    for c in cfg.collateral:
        if not c.symbol:
            raise ValueError("Collateral entry has no symbol")
        if c.symbol in seen:
            raise ValueError(f"Collateral '{c.symbol}' is listed more than once")
        seen.add(c.symbol)
        if not c.feed_id:
            raise ValueError(f"Collateral '{c.symbol}' has no feed_id")

    if cfg.price_oracle.pyth.max_price_age_seconds < 0:
        raise ValueError("max_price_age_seconds cannot be negative")
