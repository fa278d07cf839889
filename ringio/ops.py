"""Bookkeeping for submitted operations and the polling protocol for awaitables."""

from __future__ import annotations

import abc
import enum
from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .runtime import Runtime

Waker = Callable[[], None]


class _Pending(enum.Enum):
    PENDING = enum.auto()

    def __repr__(self) -> str:
        return "PENDING"


PENDING = _Pending.PENDING
"""Returned by a poll that cannot finish yet."""


class OpCode(Protocol):
    """An operation the driver attempts whenever its descriptor is ready.

    ``perform`` raises ``BlockingIOError`` or ``InterruptedError`` while it has
    to wait; any other exception is delivered as the operation's result.
    """

    fd: int
    events: int

    def perform(self) -> Any: ...


@dataclass
class RegisteredOp:
    """State of one submitted operation as seen by the runtime."""

    op: Any = None
    waker: Waker | None = None
    result: Any = None
    completed: bool = False
    cancelled: bool = False

    def outcome(self) -> Any:
        """Return the result, raising it if the operation failed."""
        if not self.completed:
            raise RuntimeError("operation has not completed")
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


class OpRuntime:
    """Tracks wakers and results of submitted operations by key."""

    def __init__(self) -> None:
        self._ops: dict[int, RegisteredOp] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._ops

    def __len__(self) -> int:
        return len(self._ops)

    def _entry(self, key: int) -> RegisteredOp:
        return self._ops.setdefault(key, RegisteredOp())

    def update_waker(self, key: int, waker: Waker) -> None:
        self._entry(key).waker = waker

    def update_result(self, key: int, op: Any, result: Any) -> None:
        entry = self._entry(key)
        entry.op = op
        entry.result = result
        entry.completed = True
        waker, entry.waker = entry.waker, None
        if waker is not None:
            waker()
        if entry.cancelled:
            self.remove(key)

    def has_result(self, key: int) -> bool:
        entry = self._ops.get(key)
        return entry is not None and entry.completed

    def cancel(self, key: int) -> None:
        self._entry(key).cancelled = True

    def remove(self, key: int) -> RegisteredOp:
        try:
            return self._ops.pop(key)
        except KeyError:
            raise KeyError(f"no operation registered under key {key}") from None


class Pollable(abc.ABC):
    """An awaitable driven by a :class:`~ringio.runtime.Runtime` through polling."""

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    @abc.abstractmethod
    def _poll(self, waker: Waker) -> Any:
        """Return the value, raise, or return PENDING after arranging a wake-up."""

    def poll(self, waker: Waker) -> Any:
        try:
            out = self._poll(waker)
        except BaseException:
            self._completed = True
            raise
        if out is not PENDING:
            self._completed = True
        return out

    def drop(self) -> None:
        """Release whatever an unfinished poll left registered."""

    def __await__(self) -> Generator[None, None, Any]:
        try:
            waker = self._runtime.current_waker()
            while True:
                out = self.poll(waker)
                if out is not PENDING:
                    return out
                yield
        finally:
            if not self._completed:
                self.drop()


class OpFuture(Pollable):
    """Completes with the result of a submitted operation."""

    def __init__(self, runtime: Runtime, key: int) -> None:
        super().__init__(runtime)
        self.key = key

    def _poll(self, waker: Waker) -> Any:
        return self._runtime.poll_task(self.key, waker)

    def drop(self) -> None:
        self._runtime.cancel_op(self.key)