"""Dice service for Big Monte — the simulated dice the engine is fed from.

Pure Python, no UI dependency. Produces a value for every die it rolls,
tracks locks and rolls per round, and notifies listeners of each change.
The engine stays the source of truth for rules; this only throws dice.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiceSnapshot:
    """What the dice currently show."""
    values: tuple[int | None, ...]
    held: tuple[bool, ...]
    rolls_this_round: int
    is_rolling: bool = False


class DiceService:
    """Simulated dice with locks and a per-round roll budget."""

    def __init__(self, dice_count: int = 5, max_rolls: int = 3, rng: random.Random | None = None) -> None:
        self.dice_count = dice_count
        self.max_rolls = max_rolls
        self._rng = rng or random.Random()
        self._values: list[int | None] = [None] * dice_count
        self._held = [False] * dice_count
        self._rolls_this_round = 0
        self._listeners: list[Callable[[DiceSnapshot], None]] = []

    # ── Listeners ─────────────────────────────────────────────────────────

    def on_change(self, listener: Callable[[DiceSnapshot], None]) -> Callable[[], None]:
        """Subscribe to snapshots. The listener is called right away with the current one.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)
        listener(self.get_snapshot())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit_change(self) -> None:
        snapshot = self.get_snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # ── State ─────────────────────────────────────────────────────────────

    def get_snapshot(self) -> DiceSnapshot:
        return DiceSnapshot(
            values=tuple(self._values),
            held=tuple(self._held),
            rolls_this_round=self._rolls_this_round,
        )

    @property
    def rolls_remaining(self) -> int:
        return max(0, self.max_rolls - self._rolls_this_round)

    # ── Actions ───────────────────────────────────────────────────────────

    def roll_all(self) -> DiceSnapshot:
        """Roll every die, including held ones."""
        return self._roll(range(self.dice_count))

    def reroll_unheld(self) -> DiceSnapshot:
        """Roll only dice that are not held. On the first roll nothing is held."""
        return self._roll([i for i in range(self.dice_count) if not self._held[i]])

    def _roll(self, indices) -> DiceSnapshot:
        if self._rolls_this_round >= self.max_rolls:
            raise RuntimeError("No rolls left this round")
        for idx in indices:
            self._values[idx] = self._rng.randint(1, 6)
        self._rolls_this_round += 1
        logger.debug("Rolled %s (roll %d)", self._values, self._rolls_this_round)
        self._emit_change()
        return self.get_snapshot()

    def toggle_hold(self, index: int) -> bool:
        """Flip the lock on a die. Returns False when the toggle was ignored."""
        if not 0 <= index < self.dice_count or self._rolls_this_round == 0:
            return False
        self._held[index] = not self._held[index]
        self._emit_change()
        return True

    def start_new_round(self) -> None:
        """Clear values, locks and the roll count."""
        self._values = [None] * self.dice_count
        self._held = [False] * self.dice_count
        self._rolls_this_round = 0
        self._emit_change()

    def restore(self, values, held, rolls_this_round: int) -> None:
        """Put the dice back into a saved position (used when resuming a game)."""
        self._values = list(values)[:self.dice_count]
        self._held = [bool(h) for h in list(held)[:self.dice_count]]
        self._rolls_this_round = rolls_this_round
        self._emit_change()
