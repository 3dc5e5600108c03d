"""Engine — deposits, redemptions, minting, burning and liquidation.

Every mutating call runs under the non-reentrant lock as one unit of work:
ledger and debt changes are applied first, the solvency checks run against
the updated state, and only then are the external token calls made. Any
failure restores the ledgers and unwinds token moves already made.
Queries over ledger state take the same lock and never observe a unit of
work in progress.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from . import constants
from .errors import (
    AssetNotSupported,
    ConfigurationMismatch,
    HealthFactorNotImproved,
    HealthFactorOk,
    InvalidAmount,
    MintFailed,
    TransferFailed,
)
from .interfaces.price_oracle import PriceOracle
from .interfaces.token import CollateralToken, SyntheticToken
from .ledger import CollateralLedger, DebtLedger
from .locking import NonReentrantLock
from .models import (
    AccountInformation,
    CollateralDeposited,
    CollateralRedeemed,
    DebtBurned,
    DebtMinted,
    PositionLiquidated,
)
from .solvency import SolvencyCalculator, calculate_health_factor
from .transaction import Interaction, UnitOfWork

logger = logging.getLogger(__name__)

Event = CollateralDeposited | CollateralRedeemed | DebtMinted | DebtBurned | PositionLiquidated


class Engine:
    """Orchestrates collateral custody and synthetic debt for all users."""

    PRECISION = constants.PRECISION
    LIQUIDATION_THRESHOLD = constants.LIQUIDATION_THRESHOLD
    LIQUIDATION_PRECISION = constants.LIQUIDATION_PRECISION
    LIQUIDATION_BONUS = constants.LIQUIDATION_BONUS
    MIN_HEALTH_FACTOR = constants.MIN_HEALTH_FACTOR

    def __init__(
        self,
        collateral_tokens: Sequence[CollateralToken],
        price_feeds: Sequence[PriceOracle],
        synthetic: SyntheticToken,
        *,
        address: str = "engine",
        check_liquidator_solvency: bool = False,
    ) -> None:
        if len(collateral_tokens) != len(price_feeds):
            raise ConfigurationMismatch(
                f"{len(collateral_tokens)} collateral assets but "
                f"{len(price_feeds)} price feeds"
            )

        self._tokens: dict[str, CollateralToken] = {}
        self._price_feeds: dict[str, PriceOracle] = {}
        for token, feed in zip(collateral_tokens, price_feeds):
            if token.symbol in self._tokens:
                raise ConfigurationMismatch(
                    f"Collateral asset '{token.symbol}' listed more than once"
                )
            self._tokens[token.symbol] = token
            self._price_feeds[token.symbol] = feed

        self._synthetic = synthetic
        self.address = address
        self.check_liquidator_solvency = check_liquidator_solvency

        self._collateral = CollateralLedger()
        self._debts = DebtLedger()
        self._solvency = SolvencyCalculator(
            self._collateral, self._debts, self._price_feeds
        )
        self._lock = NonReentrantLock()
        self._events: list[Event] = []

        logger.info(
            "Engine %s initialised with collateral: %s",
            address,
            ", ".join(self._tokens),
        )

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[UnitOfWork]:
        with self._lock:
            collateral_snapshot = self._collateral.snapshot()
            debt_snapshot = self._debts.snapshot()
            event_count = len(self._events)
            unit = UnitOfWork()
            try:
                yield unit
                unit.commit()
            except Exception as e:
                self._collateral.restore(collateral_snapshot)
                self._debts.restore(debt_snapshot)
                del self._events[event_count:]
                logger.warning("%s reverted: %s", name, e)
                raise
            committed = self._events[event_count:]

        for event in committed:
            logger.info("%s", event)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _require_positive(amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)

    def _require_asset(self, asset: str) -> CollateralToken:
        token = self._tokens.get(asset)
        if token is None:
            raise AssetNotSupported(asset)
        return token

    # ------------------------------------------------------------------
    # External interactions
    # ------------------------------------------------------------------

    def _pull_collateral(
        self, token: CollateralToken, sender: str, amount: int
    ) -> Interaction:
        def run() -> None:
            if not token.transfer_from(sender, self.address, amount):
                raise TransferFailed(
                    f"Could not pull {amount} {token.symbol} from {sender}"
                )

        def undo() -> None:
            if not token.transfer(sender, amount):
                raise TransferFailed(
                    f"Could not return {amount} {token.symbol} to {sender}"
                )

        return Interaction(
            f"pull {amount} {token.symbol} from {sender}", run, inbound=True, undo=undo
        )

    def _push_collateral(
        self, token: CollateralToken, recipient: str, amount: int
    ) -> Interaction:
        def run() -> None:
            if not token.transfer(recipient, amount):
                raise TransferFailed(
                    f"Could not send {amount} {token.symbol} to {recipient}"
                )

        return Interaction(
            f"send {amount} {token.symbol} to {recipient}", run, inbound=False
        )

    def _pull_synthetic(self, payer: str, amount: int) -> Interaction:
        def run() -> None:
            if not self._synthetic.transfer_from(payer, self.address, amount):
                raise TransferFailed(f"Could not pull {amount} synthetic from {payer}")

        def undo() -> None:
            if not self._synthetic.transfer(payer, amount):
                raise TransferFailed(f"Could not return {amount} synthetic to {payer}")

        return Interaction(
            f"pull {amount} synthetic from {payer}", run, inbound=True, undo=undo
        )

    def _burn_synthetic(self, amount: int) -> Interaction:
        def run() -> None:
            self._synthetic.burn(amount)

        def undo() -> None:
            if not self._synthetic.mint(self.address, amount):
                raise MintFailed(f"Could not re-mint {amount} burned synthetic")

        return Interaction(f"burn {amount} synthetic", run, inbound=True, undo=undo)

    def _mint_synthetic(self, recipient: str, amount: int) -> Interaction:
        def run() -> None:
            if not self._synthetic.mint(recipient, amount):
                raise MintFailed(f"Synthetic token declined mint of {amount} to {recipient}")

        return Interaction(f"mint {amount} synthetic to {recipient}", run, inbound=False)

    # ------------------------------------------------------------------
    # Effects (applied inside an open unit of work)
    # ------------------------------------------------------------------

    def _deposit(self, unit: UnitOfWork, user: str, asset: str, amount: int) -> None:
        self._require_positive(amount)
        token = self._require_asset(asset)
        self._collateral.increase(user, asset, amount)
        self._events.append(CollateralDeposited(user, asset, amount))
        unit.add(self._pull_collateral(token, user, amount))

    def _redeem(
        self,
        unit: UnitOfWork,
        asset: str,
        amount: int,
        redeemed_from: str,
        redeemed_to: str,
    ) -> None:
        self._require_positive(amount)
        token = self._require_asset(asset)
        self._collateral.decrease(redeemed_from, asset, amount)
        self._events.append(
            CollateralRedeemed(redeemed_from, redeemed_to, asset, amount)
        )
        unit.add(self._push_collateral(token, redeemed_to, amount))

    def _mint(self, unit: UnitOfWork, user: str, amount: int) -> None:
        self._require_positive(amount)
        self._debts.increase(user, amount)
        self._events.append(DebtMinted(user, amount))
        unit.add(self._mint_synthetic(user, amount))

    def _burn(
        self, unit: UnitOfWork, amount: int, on_behalf_of: str, payer: str
    ) -> None:
        self._require_positive(amount)
        self._debts.decrease(on_behalf_of, amount)
        self._events.append(DebtBurned(on_behalf_of, payer, amount))
        unit.add(self._pull_synthetic(payer, amount))
        unit.add(self._burn_synthetic(amount))

    # ------------------------------------------------------------------
    # Public mutating operations
    # ------------------------------------------------------------------

    def deposit_collateral(self, caller: str, asset: str, amount: int) -> None:
        with self._operation("deposit_collateral") as unit:
            self._deposit(unit, caller, asset, amount)

    def deposit_collateral_and_mint(
        self, caller: str, asset: str, amount: int, debt_amount: int
    ) -> None:
        with self._operation("deposit_collateral_and_mint") as unit:
            self._deposit(unit, caller, asset, amount)
            self._mint(unit, caller, debt_amount)
            self._solvency.assert_solvent(caller)

    def redeem_collateral(self, caller: str, asset: str, amount: int) -> None:
        with self._operation("redeem_collateral") as unit:
            self._redeem(unit, asset, amount, caller, caller)
            self._solvency.assert_solvent(caller)

    def redeem_collateral_for_burn(
        self, caller: str, asset: str, amount: int, debt_amount: int
    ) -> None:
        with self._operation("redeem_collateral_for_burn") as unit:
            self._burn(unit, debt_amount, caller, caller)
            self._redeem(unit, asset, amount, caller, caller)
            self._solvency.assert_solvent(caller)

    def mint(self, caller: str, debt_amount: int) -> None:
        with self._operation("mint") as unit:
            self._mint(unit, caller, debt_amount)
            self._solvency.assert_solvent(caller)

    def burn(self, caller: str, debt_amount: int) -> None:
        with self._operation("burn") as unit:
            self._burn(unit, debt_amount, caller, caller)
            self._solvency.assert_solvent(caller)

    def liquidate(
        self, caller: str, asset: str, user: str, debt_to_cover: int
    ) -> PositionLiquidated:
        """Repay part of an undercollateralized user's debt for their collateral.

        The liquidator pays ``debt_to_cover`` synthetic from their own balance
        and receives the equivalent amount of ``asset`` plus the liquidation
        bonus, taken from the user's position in that single asset.
        """
        with self._operation("liquidate") as unit:
            self._require_positive(debt_to_cover)
            self._require_asset(asset)

            starting = self._solvency.health_factor(user)
            if starting >= constants.MIN_HEALTH_FACTOR:
                raise HealthFactorOk(user, starting)

            token_amount = self._solvency.token_amount_from_usd(asset, debt_to_cover)
            bonus = (
                token_amount * constants.LIQUIDATION_BONUS
                // constants.LIQUIDATION_PRECISION
            )
            seized = token_amount + bonus

            # Dust cover can round the seizure down to nothing.
            if seized:
                self._redeem(unit, asset, seized, user, caller)
            self._burn(unit, debt_to_cover, user, caller)

            ending = self._solvency.health_factor(user)
            if ending <= starting:
                raise HealthFactorNotImproved(user, starting, ending)

            if self.check_liquidator_solvency:
                self._solvency.assert_solvent(caller)

            result = PositionLiquidated(
                liquidator=caller,
                user=user,
                asset=asset,
                debt_covered=debt_to_cover,
                collateral_seized=seized,
                bonus=bonus,
                starting_health_factor=starting,
                ending_health_factor=ending,
            )
            self._events.append(result)
        return result

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def collateral_assets(self) -> tuple[str, ...]:
        return tuple(self._tokens)

    @property
    def events(self) -> tuple[Event, ...]:
        with self._lock:
            return tuple(self._events)

    def price_feed(self, asset: str) -> PriceOracle:
        self._require_asset(asset)
        return self._price_feeds[asset]

    def collateral_balance(self, user: str, asset: str) -> int:
        self._require_asset(asset)
        with self._lock:
            return self._collateral.balance(user, asset)

    def total_collateral(self, asset: str) -> int:
        """Collateral of ``asset`` recorded across all users."""
        self._require_asset(asset)
        with self._lock:
            return self._collateral.total(asset)

    def debt_of(self, user: str) -> int:
        with self._lock:
            return self._debts.debt(user)

    def users(self) -> list[str]:
        """Users with any recorded collateral or debt, in first-seen order."""
        with self._lock:
            return list(dict.fromkeys(self._collateral.users() + self._debts.users()))

    def account_collateral_value(self, user: str) -> int:
        with self._lock:
            return self._solvency.collateral_value_usd(user)

    def account_information(self, user: str) -> AccountInformation:
        with self._lock:
            return self._solvency.account_information(user)

    def usd_value(self, asset: str, amount: int) -> int:
        return self._solvency.usd_value(asset, amount)

    def token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return self._solvency.token_amount_from_usd(asset, usd_amount)

    def health_factor(self, user: str) -> int:
        with self._lock:
            return self._solvency.health_factor(user)

    @staticmethod
    def calculate_health_factor(total_debt: int, collateral_value_usd: int) -> int:
        return calculate_health_factor(total_debt, collateral_value_usd)
