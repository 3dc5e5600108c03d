"""Over-collateralized synthetic-asset accounting engine."""
from .engine import Engine
from .errors import EngineError

__all__ = ["Engine", "EngineError"]
