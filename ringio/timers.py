"""Timer bookkeeping for the runtime."""

from __future__ import annotations

import heapq
import itertools
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .ops import Pollable, Waker

if TYPE_CHECKING:
    from .runtime import Runtime


class TimerRuntime:
    """Pending timers ordered by deadline, measured with ``clock`` in seconds."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._keys = itertools.count()
        self._tasks: dict[int, Waker | None] = {}
        self._wheel: list[tuple[float, int]] = []

    def __len__(self) -> int:
        return len(self._tasks)

    def contains(self, key: int) -> bool:
        return key in self._tasks

    def insert(self, delay: float) -> int | None:
        """Register a timer; a delay that is not positive needs none."""
        if delay <= 0:
            return None
        key = next(self._keys)
        self._tasks[key] = None
        heapq.heappush(self._wheel, (self._clock() + delay, key))
        return key

    def update_waker(self, key: int, waker: Waker) -> None:
        if key in self._tasks:
            self._tasks[key] = waker

    def cancel(self, key: int) -> None:
        self._tasks.pop(key, None)

    def _prune(self) -> None:
        while self._wheel and self._wheel[0][1] not in self._tasks:
            heapq.heappop(self._wheel)

    def min_timeout(self) -> float | None:
        """Seconds until the nearest live deadline, or None with no timers."""
        self._prune()
        if not self._wheel:
            return None
        return max(0.0, self._wheel[0][0] - self._clock())

    def wake(self) -> None:
        """Fire every timer whose deadline has passed."""
        now = self._clock()
        while self._wheel and self._wheel[0][0] <= now:
            _, key = heapq.heappop(self._wheel)
            waker = self._tasks.pop(key, None)
            if waker is not None:
                waker()


class TimerFuture(Pollable):
    """Completes once its timer has fired."""

    def __init__(self, runtime: Runtime, key: int) -> None:
        super().__init__(runtime)
        self.key = key

    def _poll(self, waker: Waker) -> Any:
        return self._runtime.poll_timer(self.key, waker)

    def drop(self) -> None:
        self._runtime.cancel_timer(self.key)