"""Auto-refresh scheduling.

The timer is self-rescheduling: after a tick the active tab's load is
dispatched, and the next tick is armed only once every Command from that
load has delivered its Message. Slow servers therefore stretch the refresh
period instead of piling up overlapping loads.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

logger = logging.getLogger(__name__)


class AutoRefreshScheduler:
    """Arms refresh ticks one at a time.

    Args:
        interval: Seconds between a load settling and the next tick.
        arm: Called as ``arm(delay, generation)``; must deliver
            ``AutoRefreshTick(generation)`` after ``delay`` seconds.
        enabled: Initial state (toggled with ctrl+r in the app).

    Ticks carry the generation they were armed with. Stopping, restarting
    or toggling bumps the generation, so a tick armed before that is
    recognised as stale and ignored.
    """

    def __init__(self, interval: float, arm: Callable[[float, int], None], enabled: bool = True):
        self.interval = interval
        self.enabled = enabled
        self.generation = 0
        self._arm_fn = arm
        self._armed = False
        self._running = False
        # Command ids dispatched by the current tick; None when no tick is in flight
        self._in_flight: set[int] | None = None

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def waiting(self) -> bool:
        """True while a tick's work has not settled yet."""
        return self._in_flight is not None

    def start(self) -> None:
        self._running = True
        self._reset()
        if self.enabled:
            self._arm()

    def stop(self) -> None:
        self._running = False
        self._reset()

    def toggle(self) -> bool:
        """Flip auto-refresh on or off; returns the new state."""
        self.enabled = not self.enabled
        self._reset()
        if self.enabled and self._running:
            self._arm()
        logger.info("Auto-refresh %s", "enabled" if self.enabled else "disabled")
        return self.enabled

    def accept_tick(self, generation: int) -> bool:
        """Whether a delivered tick should trigger a load."""
        if not (self._running and self.enabled and self._armed and generation == self.generation):
            logger.debug("Ignoring stale refresh tick (generation %s, current %s)", generation, self.generation)
            return False
        self._armed = False
        return True

    def tick_dispatched(self, command_ids: Iterable[int]) -> None:
        """Record the Commands started by an accepted tick."""
        pending = set(command_ids)
        if not pending:
            self._in_flight = None
            self._arm()
            return
        self._in_flight = pending

    def settled(self, command_id: int) -> None:
        """A Command delivered its Message; re-arm when the tick's work is done."""
        if self._in_flight is None or command_id not in self._in_flight:
            return
        self._in_flight.discard(command_id)
        if not self._in_flight:
            self._in_flight = None
            if self._running and self.enabled:
                self._arm()

    def _reset(self) -> None:
        self.generation += 1
        self._armed = False
        self._in_flight = None

    def _arm(self) -> None:
        self._armed = True
        self._arm_fn(self.interval, self.generation)
