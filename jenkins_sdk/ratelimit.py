"""Token-bucket gate shared by every outgoing request of a client."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable

from .exceptions import ConfigurationError, RateLimitError

logger = logging.getLogger(__name__)

# Waits shorter than this are not worth a log line
_LOG_WAIT_THRESHOLD = 0.1


class RateLimiter:
    """Grants at most ``rps`` tokens in any one-second window.

    The bucket holds ``rps`` tokens and each token comes back one second
    after it was spent. Callers that find the bucket empty reserve the next
    token to come back and sleep until then, so waiting callers are served in
    the order they arrived.

    Args:
        rps: Capacity and refill rate, in requests per second.
        clock: Monotonic time source (injectable for tests).
        sleep: Sleep function paired with ``clock``.
    """

    def __init__(
        self,
        rps: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rps <= 0:
            raise ConfigurationError(f"rate limit must be positive, got {rps}")
        self.rps = rps
        self._capacity = max(1, int(rps))
        # A fractional rate rounds the bucket down; tokens never return sooner than 1s
        self._period = max(1.0, self._capacity / rps)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        # Times at which the last `capacity` tokens were (or will be) spent
        self._grants: deque[float] = deque(maxlen=self._capacity)

    def acquire(self, deadline: float | None = None) -> float:
        """Take one token, waiting for it if the bucket is empty.

        Args:
            deadline: Clock value after which waiting is pointless. ``None``
                waits as long as needed.

        Returns:
            Seconds spent waiting.

        Raises:
            RateLimitError: If the next token only comes back after
                ``deadline``. No token is consumed in that case.
        """
        with self._lock:
            now = self._clock()
            if len(self._grants) < self._capacity:
                scheduled = now
            else:
                scheduled = max(now, self._grants[0] + self._period)
            if deadline is not None and scheduled > deadline:
                raise RateLimitError(
                    f"No request slot before deadline "
                    f"(next slot in {scheduled - now:.2f}s, {self.rps} req/s)"
                )
            self._grants.append(scheduled)

        wait = scheduled - now
        if wait > 0:
            if wait >= _LOG_WAIT_THRESHOLD:
                logger.debug("Rate limiter holding request for %.2fs", wait)
            self._sleep(wait)
        return wait
