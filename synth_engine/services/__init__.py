"""Service modules"""
from .simulation import (
    PositionReport,
    Scenario,
    Simulation,
    SimulationResult,
    format_report,
    load_scenario,
    run_scenario,
)

__all__ = [
    "PositionReport",
    "Scenario",
    "Simulation",
    "SimulationResult",
    "format_report",
    "load_scenario",
    "run_scenario",
]
