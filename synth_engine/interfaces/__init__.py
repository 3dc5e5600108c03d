"""Protocol interfaces for the engine's external collaborators."""
from .price_oracle import PriceOracle
from .token import CollateralToken, SyntheticToken

__all__ = ["CollateralToken", "PriceOracle", "SyntheticToken"]
