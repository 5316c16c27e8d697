"""Tick-driven delayed actions.

Replaces blocking waits with scheduled resumptions: each delay is a
(remaining time, action) pair advanced once per control tick, so every
other component keeps ticking while a delay is pending.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List


@dataclass(order=True)
class ScheduledAction:
    """A pending action. Ordered by due time, then by scheduling order."""

    due: float
    seq: int
    action: Callable[[], None] = field(compare=False)
    label: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)


class TickScheduler:
    """Single-threaded scheduler advanced by the control loop."""

    def __init__(self) -> None:
        self.time: float = 0.0
        self._queue: List[ScheduledAction] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, action: Callable[[], None], label: str = "") -> ScheduledAction:
        """Run action once at least `delay` seconds of ticks have elapsed.

        Args:
            delay: Delay in seconds (<= 0 fires on the next advance()).
            action: Callable with no arguments.
            label: Name used in log messages.

        Returns:
            Handle that can be passed to cancel().
        """
        entry = ScheduledAction(self.time + max(0.0, delay), next(self._counter), action, label)
        self._queue.append(entry)
        self._queue.sort()
        logging.debug(f"Scheduled '{label}' in {delay:.2f}s")
        return entry

    def advance(self, dt: float) -> int:
        """Advance time and fire every due action in due order.

        Actions scheduled by a firing action with zero delay fire in the
        same call.

        Returns:
            Number of actions fired.
        """
        self.time += dt
        fired = 0
        while self._queue and self._queue[0].due <= self.time + 1e-12:
            entry = self._queue.pop(0)
            if entry.cancelled:
                continue
            entry.action()
            fired += 1
        return fired

    def cancel(self, entry: ScheduledAction) -> None:
        entry.cancelled = True
        if entry in self._queue:
            self._queue.remove(entry)

    def cancel_all(self) -> None:
        """Abandon every pending resumption."""
        for entry in self._queue:
            entry.cancelled = True
        if self._queue:
            logging.debug(f"Cancelled {len(self._queue)} pending action(s)")
        self._queue.clear()

    @property
    def pending(self) -> int:
        return len(self._queue)
