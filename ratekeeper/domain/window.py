from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

# Below monotonic clock resolution; absorbs float error when arrivals land
# exactly one period apart (e.g. i * 0.1).
_BOUNDARY_TOLERANCE_S = 1e-9


def format_delay(delay_s: float) -> str:
    """Render a delay the way it goes on the wire: fixed 3 decimals, never negative."""

    return f"{max(0.0, delay_s):.3f}"


class SlidingWindowKeeper:
    """Tracks the last N request instants and prices the next request.

    Unlike a limiter that denies, this always admits the arrival and answers
    with how long the caller should wait. Once the window holds N entries, each
    arrival is compared with the oldest one it evicts:

    - the oldest entry is at least ``period_s`` old: no wait, burst counter resets;
    - otherwise: wait until that entry leaves the period, plus one
      ``base_delay_s`` (period / N) for this arrival and for every over-limit
      arrival directly preceding it.

    All state sits behind one lock; ``record_and_decide`` is the only mutator.
    """

    def __init__(
        self,
        *,
        limit: int,
        period_s: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if not (math.isfinite(period_s) and period_s > 0):
            raise ValueError("period_s must be a finite number > 0")

        self._limit = int(limit)
        self._period_s = float(period_s)
        self._base_delay_s = self._period_s / self._limit
        self._clock = clock

        self._lock = threading.Lock()
        self._window: deque[float] = deque()
        # Consecutive over-limit arrivals since the window last had slack.
        self._overflow = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def period_s(self) -> float:
        return self._period_s

    @property
    def base_delay_s(self) -> float:
        return self._base_delay_s

    @property
    def overflow(self) -> int:
        return self._overflow

    @property
    def window_size(self) -> int:
        return len(self._window)

    def snapshot(self) -> tuple[float, ...]:
        with self._lock:
            return tuple(self._window)

    def record_and_decide(self, now: float | None = None) -> float:
        """Record one arrival and return the delay in seconds the caller must wait.

        When ``now`` is omitted the clock is read inside the critical section, so
        lock order and timestamp order agree.
        """

        with self._lock:
            if now is None:
                now = self._clock()
            elif self._window and now < self._window[-1]:
                raise ValueError("timestamps must be non-decreasing")
            return self._decide(now)

    def _decide(self, now: float) -> float:
        # Insert first, then evict: the evicted entry is what we compare against.
        self._window.append(now)
        if len(self._window) <= self._limit:
            return 0.0

        first = self._window.popleft()
        delta = now - first
        if delta >= self._period_s - _BOUNDARY_TOLERANCE_S:
            self._overflow = 0
            return 0.0

        delay = (self._period_s - delta) + self._base_delay_s * (self._overflow + 1)
        self._overflow += 1
        return delay
