"""Price oracle adapters."""
from .pyth import PythOracle
from .static import StaticOracle

__all__ = ["PythOracle", "StaticOracle"]
