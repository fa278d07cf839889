import selectors
import socket
import threading
import time

import pytest

from ringio.ops import PENDING, Pollable
from ringio.runtime import Runtime, TaskCancelled, block_on, current_runtime, spawn


class _SockOp:
    """An operation that runs ``action`` once its socket is readable."""

    events = selectors.EVENT_READ

    def __init__(self, sock, action):
        sock.setblocking(False)
        self.fd = sock.fileno()
        self._action = action

    def perform(self):
        return self._action()


def _reset():
    raise ConnectionResetError("reset by peer")


class Never(Pollable):
    def _poll(self, waker):
        return PENDING


async def _value(value):
    return value


async def _fail():
    raise ValueError("bad")


async def _stuck(runtime):
    await Never(runtime)


def _spawned(runtime, awaitable):
    async def start():
        return runtime.spawn(awaitable)

    return runtime.block_on(start())


@pytest.fixture
def runtime():
    return Runtime()


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()


def test_block_on_returns_value(runtime):
    assert runtime.block_on(_value(42)) == 42


def test_spawned_task_result_is_awaited(runtime):
    async def main():
        return await runtime.spawn(_value(42))

    assert runtime.block_on(main()) == 42


def test_task_can_be_awaited_twice(runtime):
    async def main():
        task = runtime.spawn(_value("value"))
        return await task, await task

    assert runtime.block_on(main()) == ("value", "value")


def test_block_on_propagates_exception(runtime):
    with pytest.raises(ValueError, match="bad"):
        runtime.block_on(_fail())


def test_block_on_inside_task_is_rejected(runtime):
    async def main():
        return runtime.block_on(_value(1))

    with pytest.raises(RuntimeError):
        runtime.block_on(main())


def test_spawn_rejects_non_awaitable(runtime):
    with pytest.raises(TypeError):
        runtime.spawn(5)


def test_waiting_on_nothing_is_a_deadlock(runtime):
    with pytest.raises(RuntimeError):
        runtime.block_on(_stuck(runtime))


def test_submit_with_data_ready(runtime, pair):
    left, right = pair
    right.send(b"ready")
    op = _SockOp(left, lambda: left.recv(1024))
    assert runtime.block_on(runtime.submit(op)) == b"ready"


def test_submit_completes_when_data_arrives(runtime, pair):
    left, right = pair

    async def writer():
        await runtime.create_timer(0.01)
        right.send(b"ping")

    async def main():
        runtime.spawn(writer())
        return await runtime.submit(_SockOp(left, lambda: left.recv(1024)))

    assert runtime.block_on(main()) == b"ping"


def test_failed_operation_raises(runtime, pair):
    left, _ = pair
    with pytest.raises(ConnectionResetError):
        runtime.block_on(runtime.submit(_SockOp(left, _reset)))


def test_cancelled_task_releases_its_operation(runtime, pair):
    left, _ = pair

    async def waiter():
        return await runtime.submit(_SockOp(left, lambda: left.recv(1024)))

    task = _spawned(runtime, waiter())
    assert task.cancel() is True
    with pytest.raises(TaskCancelled):
        task.result()

    # With the operation gone nothing is pending, so waiting forever is detected.
    with pytest.raises(RuntimeError):
        runtime.block_on(_stuck(runtime))


def test_cancelled_sleeping_task_does_not_delay(runtime):
    _spawned(runtime, runtime.create_timer(10.0)).cancel()

    async def quick():
        await runtime.create_timer(0.01)
        return "done"

    began = time.monotonic()
    assert runtime.block_on(quick()) == "done"
    assert time.monotonic() - began < 5.0


def test_cancel_finished_task_returns_false(runtime):
    async def main():
        task = runtime.spawn(_value(1))
        await task
        return task

    task = runtime.block_on(main())
    assert task.cancel() is False
    assert task.result() == 1


def test_timer_awaits_at_least_its_delay(runtime):
    delay = 0.05

    async def main():
        began = time.monotonic()
        await runtime.create_timer(delay)
        return time.monotonic() - began

    assert runtime.block_on(main()) >= delay


def test_current_runtime_is_per_thread():
    here = current_runtime()
    assert current_runtime() is here
    seen = []
    thread = threading.Thread(target=lambda: seen.append(current_runtime()))
    thread.start()
    thread.join()
    assert seen[0] is not here
    assert seen[0].__class__ is Runtime


def test_module_level_spawn_and_block_on():
    async def main():
        return await spawn(_value("child"))

    assert block_on(main()) == "child"


def test_current_waker_outside_task_raises(runtime):
    with pytest.raises(RuntimeError):
        runtime.current_waker()