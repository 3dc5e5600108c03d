"""Token protocols — transferable balances as seen from the engine's address."""
from typing import Protocol


class CollateralToken(Protocol):
    """Fungible collateral asset. Calls act on behalf of the engine."""

    @property
    def symbol(self) -> str: ...

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer(self, recipient: str, amount: int) -> bool: ...


class SyntheticToken(Protocol):
    """Synthetic token whose supply only the engine may change."""

    def mint(self, to: str, amount: int) -> bool: ...

    def burn(self, amount: int) -> None: ...

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer(self, recipient: str, amount: int) -> bool: ...
