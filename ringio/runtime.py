"""A single-threaded runtime driving coroutines, operations and timers."""

from __future__ import annotations

import contextlib
import functools
import inspect
import operator
import selectors
import threading
import time
from collections import deque
from collections.abc import Awaitable, Coroutine, Iterator
from typing import Any

from .ops import PENDING, OpCode, OpFuture, OpRuntime, Pollable, Waker
from .timers import TimerFuture, TimerRuntime


class TaskCancelled(Exception):
    """Raised when awaiting the result of a cancelled task."""

    def __init__(self, message: str = "task was cancelled") -> None:
        super().__init__(message)


def _attempt(op: OpCode) -> tuple[bool, Any]:
    try:
        return True, op.perform()
    except (BlockingIOError, InterruptedError):
        return False, None
    except Exception as exc:
        return True, exc


class _Driver:
    """Retries operations when the selector reports their descriptors ready."""

    def __init__(self) -> None:
        self._selector = selectors.DefaultSelector()
        self._keys = iter(range(1 << 62))
        self._waiting: dict[int, dict[int, OpCode]] = {}
        self._owner: dict[int, int] = {}
        self._completed: deque[tuple[int, OpCode, Any]] = deque()

    def idle(self) -> bool:
        return not self._owner and not self._completed

    def push(self, op: OpCode) -> int:
        key = next(self._keys)
        ready, result = _attempt(op)
        if ready:
            self._completed.append((key, op, result))
        else:
            self._waiting.setdefault(op.fd, {})[key] = op
            self._owner[key] = op.fd
            self._update(op.fd)
        return key

    def cancel(self, key: int) -> None:
        fd = self._owner.pop(key, None)
        if fd is not None:
            self._waiting.get(fd, {}).pop(key, None)
            self._update(fd)
        else:
            self._completed = deque(e for e in self._completed if e[0] != key)

    def _update(self, fd: int) -> None:
        ops = self._waiting.get(fd, {})
        mask = functools.reduce(operator.or_, (op.events for op in ops.values()), 0)
        if not mask:
            self._waiting.pop(fd, None)
            with contextlib.suppress(KeyError, ValueError):
                self._selector.unregister(fd)
            return
        try:
            self._selector.modify(fd, mask)
        except KeyError:
            self._selector.register(fd, mask)

    def poll(self, timeout: float | None) -> list[tuple[int, OpCode, Any]]:
        if self._completed:
            timeout = 0
        if self._owner:
            events = self._selector.select(timeout)
        else:
            if timeout:
                time.sleep(timeout)
            events = []
        for sel_key, mask in events:
            fd = sel_key.fd
            for key, op in list(self._waiting.get(fd, {}).items()):
                if not op.events & mask:
                    continue
                ready, result = _attempt(op)
                if ready:
                    del self._waiting[fd][key]
                    del self._owner[key]
                    self._completed.append((key, op, result))
            self._update(fd)
        done = list(self._completed)
        self._completed.clear()
        return done


class Task(Pollable):
    """A spawned coroutine; awaiting it yields its return value."""

    def __init__(self, runtime: Runtime, coro: Coroutine[Any, Any, Any]) -> None:
        super().__init__(runtime)
        self._coro = coro
        self._done = False
        self._result: Any = None
        self._error: BaseException | None = None
        self._scheduled = False
        self._waiters: list[Waker] = []

    def done(self) -> bool:
        return self._done

    def result(self) -> Any:
        if not self._done:
            raise RuntimeError("task has not finished")
        if self._error is not None:
            raise self._error
        return self._result

    def wake(self) -> None:
        if not self._done and not self._scheduled:
            self._scheduled = True
            self._runtime._runnables.append(self)

    def run(self) -> None:
        self._scheduled = False
        if self._done:
            return
        with self._runtime._running(self):
            try:
                self._coro.send(None)
            except StopIteration as stop:
                self._finish(result=stop.value)
            except BaseException as exc:
                self._finish(error=exc)
                if not isinstance(exc, Exception):
                    raise

    def _finish(self, result: Any = None, error: BaseException | None = None) -> None:
        self._done = True
        self._result = result
        self._error = error
        waiters, self._waiters = self._waiters, []
        for waker in waiters:
            waker()

    def cancel(self) -> bool:
        """Close the coroutine; return False if the task had already finished."""
        if self._done:
            return False
        if self._runtime._current is self:
            raise RuntimeError("a task cannot cancel itself while running")
        self._coro.close()
        self._finish(error=TaskCancelled())
        return True

    def _poll(self, waker: Waker) -> Any:
        if self._done:
            return self.result()
        if waker not in self._waiters:
            self._waiters.append(waker)
        return PENDING


class _Ready(Pollable):
    def _poll(self, waker: Waker) -> Any:
        return None


class Runtime:
    """Runs tasks, submitted operations and timers on the calling thread."""

    def __init__(self) -> None:
        self._driver = _Driver()
        self._runnables: deque[Task] = deque()
        self._ops = OpRuntime()
        self._timers = TimerRuntime()
        self._current: Task | None = None

    @contextlib.contextmanager
    def _running(self, task: Task) -> Iterator[None]:
        previous, self._current = self._current, task
        try:
            yield
        finally:
            self._current = previous

    def current_waker(self) -> Waker:
        if self._current is None:
            raise RuntimeError("not inside a task of this runtime")
        return self._current.wake

    def spawn(self, awaitable: Awaitable[Any]) -> Task:
        if inspect.iscoroutine(awaitable):
            coro = awaitable
        elif hasattr(awaitable, "__await__"):

            async def _wrapped() -> Any:
                return await awaitable

            coro = _wrapped()
        else:
            raise TypeError(f"{type(awaitable).__name__} object is not awaitable")
        task = Task(self, coro)
        task.wake()
        return task

    def block_on(self, awaitable: Awaitable[Any]) -> Any:
        """Run ``awaitable`` to completion, driving every other task meanwhile."""
        if self._current is not None:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError("block_on cannot be called from inside a task")
        task = self.spawn(awaitable)
        try:
            while True:
                while self._runnables:
                    self._runnables.popleft().run()
                if task.done():
                    return task.result()
                self._poll()
        except BaseException:
            task.cancel()
            raise

    def submit(self, op: OpCode) -> OpFuture:
        return OpFuture(self, self._driver.push(op))

    def create_timer(self, delay: float) -> Pollable:
        key = self._timers.insert(delay)
        if key is None:
            return _Ready(self)
        return TimerFuture(self, key)

    def cancel_op(self, key: int) -> None:
        self._driver.cancel(key)
        self._ops.cancel(key)
        self._ops.remove(key)

    def cancel_timer(self, key: int) -> None:
        self._timers.cancel(key)

    def poll_task(self, key: int, waker: Waker) -> Any:
        if self._ops.has_result(key):
            return self._ops.remove(key).outcome()
        self._ops.update_waker(key, waker)
        return PENDING

    def poll_timer(self, key: int, waker: Waker) -> Any:
        if self._timers.contains(key):
            self._timers.update_waker(key, waker)
            return PENDING
        return None

    def _poll(self) -> None:
        timeout = self._timers.min_timeout()
        if timeout is None and self._driver.idle():
            raise RuntimeError("no task can make progress: nothing is pending")
        for key, op, result in self._driver.poll(timeout):
            self._ops.update_result(key, op, result)
        self._timers.wake()


_local = threading.local()


def current_runtime() -> Runtime:
    """Return this thread's runtime, creating it on first use."""
    runtime = getattr(_local, "runtime", None)
    if runtime is None:
        runtime = _local.runtime = Runtime()
    return runtime


def block_on(awaitable: Awaitable[Any]) -> Any:
    return current_runtime().block_on(awaitable)


def spawn(awaitable: Awaitable[Any]) -> Task:
    return current_runtime().spawn(awaitable)


def submit(op: OpCode) -> OpFuture:
    return current_runtime().submit(op)