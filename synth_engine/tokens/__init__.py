"""Token ledgers usable as engine collaborators."""
from .memory import BoundToken, InMemoryToken, TokenError

__all__ = ["BoundToken", "InMemoryToken", "TokenError"]
