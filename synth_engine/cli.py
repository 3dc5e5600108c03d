"""Command-line interface for the synthetic-asset engine."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import EngineConfig, load_config
from .logging_setup import configure_logging
from .oracles import PythOracle
from .services import format_report, load_scenario, run_scenario


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="synth-engine",
        description="Over-collateralized synthetic asset engine",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    simulate_parser = sub.add_parser(
        "simulate",
        help="Run a YAML scenario against an in-memory engine "
        "(engine settings from --config, overridden by the scenario)",
    )
    simulate_parser.add_argument("scenario", help="Path to scenario YAML")

    quote_parser = sub.add_parser(
        "quote", help="Fetch live Pyth quotes for configured collateral"
    )
    quote_parser.add_argument(
        "symbols",
        nargs="*",
        help="Collateral symbols to fetch (default: all configured)",
    )

    return parser


async def _quote(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    oracle = PythOracle(config.price_oracle.pyth, config.feeds)
    symbols = [s.upper() for s in args.symbols] or None
    quotes = await oracle.refresh(symbols)
    if not quotes:
        print("No quotes received")
        return 1
    for symbol, quote in sorted(quotes.items()):
        print(f"{symbol}: ${quote.price / 10**quote.decimals:,.4f}")
    return 0


def _engine_defaults(config_path: str | None) -> EngineConfig | None:
    """Engine settings from config.yaml; the file is optional unless named."""
    try:
        return load_config(config_path).engine
    except FileNotFoundError:
        if config_path is not None:
            raise
        return None


def _simulate(args: argparse.Namespace) -> int:
    scenario = load_scenario(args.scenario, _engine_defaults(args.config))
    result = run_scenario(scenario)
    print(format_report(result))
    return 1 if result.failed else 0


def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)

    if args.command == "simulate":
        return _simulate(args)
    if args.command == "quote":
        return asyncio.run(_quote(args))
    build_parser().print_help()
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(_run(args))
