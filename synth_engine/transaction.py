"""Unit of work for one engine call.

Internal effects are applied directly by the engine; calls into external
collaborators are queued here and run at commit, after every check has
passed. Moves into engine custody run before moves out of it, so a failure
can always be unwound by handing back what was taken in.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interaction:
    """One external call. ``run`` raises on failure."""

    description: str
    run: Callable[[], None]
    inbound: bool
    undo: Callable[[], None] | None = None


class UnitOfWork:
    """Queue of external interactions executed all-or-nothing at commit."""

    def __init__(self) -> None:
        self._pending: list[Interaction] = []

    @property
    def pending(self) -> tuple[Interaction, ...]:
        return tuple(self._pending)

    def add(self, interaction: Interaction) -> None:
        self._pending.append(interaction)

    def commit(self) -> None:
        """Run queued interactions, compensating completed ones on failure."""
        ordered = sorted(self._pending, key=lambda i: not i.inbound)
        completed: list[Interaction] = []
        for interaction in ordered:
            logger.debug("Executing %s", interaction.description)
            try:
                interaction.run()
            except Exception as e:
                logger.warning("%s failed: %s", interaction.description, e)
                self._compensate(completed)
                raise
            completed.append(interaction)
        self._pending.clear()

    @staticmethod
    def _compensate(completed: list[Interaction]) -> None:
        for interaction in reversed(completed):
            if interaction.undo is None:
                logger.critical(
                    "Cannot unwind completed interaction: %s", interaction.description
                )
                continue
            try:
                interaction.undo()
                logger.info("Unwound %s", interaction.description)
            except Exception:
                logger.critical(
                    "Failed to unwind %s", interaction.description, exc_info=True
                )
