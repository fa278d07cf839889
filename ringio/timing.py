"""Sleeping, deadlines and intervals."""

from __future__ import annotations

import time
from collections.abc import Awaitable
from typing import Any

from .ops import PENDING, Pollable, Waker
from .runtime import Runtime, Task, current_runtime


class Elapsed(TimeoutError):
    """Raised by :func:`timeout` and :func:`timeout_at` when time runs out."""

    def __init__(self, message: str = "deadline has elapsed") -> None:
        super().__init__(message)


async def sleep(duration: float) -> None:
    """Wait for ``duration`` seconds."""
    await current_runtime().create_timer(duration)


async def sleep_until(deadline: float) -> None:
    """Wait until ``time.monotonic()`` reaches ``deadline``."""
    await sleep(deadline - time.monotonic())


class _Race(Pollable):
    def __init__(self, runtime: Runtime, task: Task, timer: Pollable) -> None:
        super().__init__(runtime)
        self._task = task
        self._timer = timer

    def _poll(self, waker: Waker) -> Any:
        try:
            out = self._task.poll(waker)
        except BaseException:
            self._timer.drop()
            raise
        if out is not PENDING:
            self._timer.drop()
            return out
        if self._timer.poll(waker) is not PENDING:
            self._task.cancel()
            raise Elapsed()
        return PENDING

    def drop(self) -> None:
        self._timer.drop()
        self._task.cancel()


async def timeout(duration: float, awaitable: Awaitable[Any]) -> Any:
    """Return the result of ``awaitable``, or cancel it and raise Elapsed."""
    runtime = current_runtime()
    task = runtime.spawn(awaitable)
    timer = runtime.create_timer(duration)
    return await _Race(runtime, task, timer)


async def timeout_at(deadline: float, awaitable: Awaitable[Any]) -> Any:
    return await timeout(deadline - time.monotonic(), awaitable)


class Interval:
    """Ticks at ``start``, then on every multiple of ``period`` after it."""

    def __init__(self, start: float, period: float) -> None:
        self.start = start
        self.period = period
        self._first_ticked = False

    async def tick(self) -> float:
        """Wait for the next instant of the interval and return it."""
        if not self._first_ticked:
            await sleep_until(self.start)
            self._first_ticked = True
            return self.start
        now = time.monotonic()
        upcoming = now + self.period - ((now - self.start) % self.period)
        await sleep_until(upcoming)
        return upcoming


def interval(period: float) -> Interval:
    return interval_at(time.monotonic(), period)


def interval_at(start: float, period: float) -> Interval:
    if period <= 0:
        raise ValueError("`period` must be non-zero.")
    return Interval(start, period)