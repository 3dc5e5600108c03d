"""Unit tests for the non-reentrant engine lock."""
from __future__ import annotations

import threading
import time

import pytest

from synth_engine.engine import Engine
from synth_engine.errors import ReentrantCall, TransferFailed
from synth_engine.locking import NonReentrantLock
from synth_engine.oracles import StaticOracle
from synth_engine.tokens import BoundToken, InMemoryToken


class TestNonReentrantLock:
    def test_acquire_and_release(self) -> None:
        lock = NonReentrantLock()
        with lock:
            assert lock.locked
        assert not lock.locked

    def test_reentry_fails_immediately(self) -> None:
        lock = NonReentrantLock()
        with lock:
            with pytest.raises(ReentrantCall):
                with lock:
                    pass
            assert lock.locked
        assert not lock.locked

    def test_released_on_error(self) -> None:
        lock = NonReentrantLock()
        with pytest.raises(RuntimeError):
            with lock:
                raise RuntimeError("boom")
        assert not lock.locked
        with lock:
            pass

    def test_other_threads_wait(self) -> None:
        lock = NonReentrantLock()
        order: list[str] = []
        entered = threading.Event()

        def holder() -> None:
            with lock:
                entered.set()
                time.sleep(0.05)
                order.append("holder")

        def waiter() -> None:
            entered.wait()
            with lock:
                order.append("waiter")

        threads = [threading.Thread(target=holder), threading.Thread(target=waiter)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=2)

        assert order == ["holder", "waiter"]


class StallingToken(BoundToken):
    """Collateral whose pull blocks until released, then refuses."""

    def __init__(self, token: InMemoryToken, caller: str) -> None:
        super().__init__(token, caller)
        self.pulling = threading.Event()
        self.release = threading.Event()

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        self.pulling.set()
        self.release.wait(timeout=2)
        return False


class PeekingToken(BoundToken):
    """Collateral that reads the engine's ledger while being pulled."""

    engine: Engine | None = None

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        assert self.engine is not None
        self.engine.collateral_balance(sender, self.symbol)
        return super().transfer_from(sender, recipient, amount)


class TestEngineSerialization:
    def test_query_waits_for_operation_in_flight(
        self, oracle: StaticOracle, weth: InMemoryToken, synthetic: InMemoryToken
    ) -> None:
        token = StallingToken(weth, "engine")
        engine = Engine([token], [oracle], synthetic.bind("engine"))
        weth.approve("user", "engine", 10 * 10**18)
        failures: list[Exception] = []
        reads: list[int] = []

        def depositor() -> None:
            try:
                engine.deposit_collateral("user", "WETH", 10 * 10**18)
            except TransferFailed as e:
                failures.append(e)

        def reader() -> None:
            token.pulling.wait(timeout=2)
            reads.append(engine.collateral_balance("user", "WETH"))

        threads = [threading.Thread(target=depositor), threading.Thread(target=reader)]
        for t in threads:
            t.start()

        assert token.pulling.wait(timeout=2)
        time.sleep(0.05)
        # the recorded deposit is not visible while the pull is pending
        assert reads == []

        token.release.set()
        for t in threads:
            t.join(timeout=2)

        assert len(failures) == 1
        assert reads == [0]

    def test_query_from_token_callback_is_reentrant(
        self, oracle: StaticOracle, weth: InMemoryToken, synthetic: InMemoryToken
    ) -> None:
        token = PeekingToken(weth, "engine")
        engine = Engine([token], [oracle], synthetic.bind("engine"))
        token.engine = engine
        weth.approve("user", "engine", 10 * 10**18)

        with pytest.raises(ReentrantCall):
            engine.deposit_collateral("user", "WETH", 10 * 10**18)
        assert engine.collateral_balance("user", "WETH") == 0
