"""Non-reentrant lock guarding the engine's entry points."""
from __future__ import annotations

import threading

from .errors import ReentrantCall


class NonReentrantLock:
    """Exclusive lock that fails fast on re-entry from the holding thread.

    Other threads block until the holder releases, so calls are linearized.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> "NonReentrantLock":
        if self._owner == threading.get_ident():
            raise ReentrantCall("Engine is already executing a call on this thread")
        self._lock.acquire()
        self._owner = threading.get_ident()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._owner = None
        self._lock.release()
