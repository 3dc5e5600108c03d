"""In-memory fungible token ledger with ERC-20 style allowances."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Raised by operations that revert rather than report failure."""


class InMemoryToken:
    """Balances, allowances and supply for one token.

    Transfers report failure by returning ``False``. Only ``minter`` may mint
    through a bound handle.
    """

    def __init__(self, symbol: str, minter: str | None = None) -> None:
        self.symbol = symbol
        self.minter = minter
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self.total_supply = 0

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def mint_to(self, owner: str, amount: int) -> None:
        """Faucet for tests and simulations; bypasses the minter check."""
        self._balances[owner] = self.balance_of(owner) + amount
        self.total_supply += amount

    def burn_from(self, owner: str, amount: int) -> None:
        balance = self.balance_of(owner)
        if amount <= 0 or balance < amount:
            raise TokenError(
                f"Cannot burn {amount} {self.symbol}: {owner} holds {balance}"
            )
        self._balances[owner] = balance - amount
        self.total_supply -= amount

    def move(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug(
                "%s transfer of %d from %s refused: balance %d",
                self.symbol, amount, sender, self.balance_of(sender),
            )
            return False
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        return True

    def bind(self, caller: str) -> BoundToken:
        """Handle whose calls act on behalf of ``caller``."""
        return BoundToken(self, caller)


class BoundToken:
    """View of an :class:`InMemoryToken` from one caller's address."""

    def __init__(self, token: InMemoryToken, caller: str) -> None:
        self._token = token
        self.caller = caller

    @property
    def symbol(self) -> str:
        return self._token.symbol

    def transfer(self, recipient: str, amount: int) -> bool:
        return self._token.move(self.caller, recipient, amount)

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        allowed = self._token.allowance(sender, self.caller)
        if allowed < amount:
            logger.debug(
                "%s allowance %s->%s is %d, needed %d",
                self.symbol, sender, self.caller, allowed, amount,
            )
            return False
        if not self._token.move(sender, recipient, amount):
            return False
        self._token.approve(sender, self.caller, allowed - amount)
        return True

    def approve(self, spender: str, amount: int) -> None:
        self._token.approve(self.caller, spender, amount)

    def mint(self, to: str, amount: int) -> bool:
        if self.caller != self._token.minter:
            logger.warning("%s mint refused: %s is not the minter", self.symbol, self.caller)
            return False
        self._token.mint_to(to, amount)
        return True

    def burn(self, amount: int) -> None:
        self._token.burn_from(self.caller, amount)
