"""Engine error taxonomy. Every failure aborts and reverts the whole call."""
from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine failures."""


class InvalidAmount(EngineError):
    def __init__(self, amount: int) -> None:
        super().__init__(f"Amount must be greater than zero, got {amount}")
        self.amount = amount


class AssetNotSupported(EngineError):
    def __init__(self, asset: str) -> None:
        super().__init__(f"Collateral asset '{asset}' is not supported")
        self.asset = asset


class ConfigurationMismatch(EngineError):
    """Collateral assets and price feeds do not pair up 1:1."""


class TransferFailed(EngineError):
    """An external asset move reported failure."""


class MintFailed(EngineError):
    """The synthetic token authority declined a mint."""


class HealthFactorBelowThreshold(EngineError):
    def __init__(self, user: str, health_factor: int) -> None:
        super().__init__(
            f"Health factor of {user} is below the minimum: {health_factor}"
        )
        self.user = user
        self.health_factor = health_factor


class HealthFactorOk(EngineError):
    def __init__(self, user: str, health_factor: int) -> None:
        super().__init__(
            f"Position of {user} is not liquidatable (health factor {health_factor})"
        )
        self.user = user
        self.health_factor = health_factor


class HealthFactorNotImproved(EngineError):
    def __init__(self, user: str, starting: int, ending: int) -> None:
        super().__init__(
            f"Liquidation did not improve health factor of {user}: "
            f"{starting} -> {ending}"
        )
        self.user = user
        self.starting_health_factor = starting
        self.ending_health_factor = ending


class LedgerUnderflow(EngineError):
    """A decrement exceeded the recorded position."""

    def __init__(self, user: str, requested: int, available: int) -> None:
        super().__init__(
            f"{type(self).__name__}: {user} holds {available}, requested {requested}"
        )
        self.user = user
        self.requested = requested
        self.available = available


class InsufficientCollateral(LedgerUnderflow):
    pass


class InsufficientDebt(LedgerUnderflow):
    pass


class ReentrantCall(EngineError):
    """A mutating entry point was re-entered while the engine lock was held."""


class InvalidPrice(EngineError):
    def __init__(self, asset: str, price: int) -> None:
        super().__init__(f"Oracle returned a non-positive price for {asset}: {price}")
        self.asset = asset
        self.price = price


class PriceUnavailable(EngineError):
    """The oracle adapter holds no quote for the asset."""


class StalePrice(EngineError):
    """The quote is older than the configured maximum age."""
