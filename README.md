# ringio

A small, single-threaded asynchronous runtime for Python. It drives
coroutines itself, without asyncio, and offers timers, deadlines and
intervals, non-blocking sockets whose waiting operations are awaitable, and
Unix domain stream sockets.

## Installing

```
pip install ringio
```

## Running coroutines

`ringio.runtime.block_on` runs one awaitable to completion on the runtime of
the current thread (created on first use, see `current_runtime()`). Inside
it, `spawn` starts more tasks that run at the same time; awaiting a `Task`
gives its return value or raises its exception.

```python
from ringio.runtime import block_on, spawn

async def compute():
    return 42

async def main():
    task = spawn(compute())
    return await task

assert block_on(main()) == 42
```

`Task.cancel()` closes an unfinished task; awaiting it afterwards raises
`TaskCancelled`. Calling `block_on` from inside a task raises `RuntimeError`,
as does a `block_on` whose tasks are all waiting on something that can never
arrive (no pending timer and no pending operation).

## Timers

`ringio.timing` measures time in seconds on `time.monotonic()`.

```python
from ringio.runtime import block_on
from ringio.timing import Elapsed, interval, sleep, timeout

async def main():
    await sleep(0.1)

    ticker = interval(0.01)
    await ticker.tick()   # first tick returns at once
    await ticker.tick()   # about 10 ms later

    try:
        await timeout(0.05, sleep(1.0))
    except Elapsed:
        print("deadline has elapsed")

block_on(main())
```

`sleep_until`, `timeout_at` and `interval_at` take a `time.monotonic()`
deadline in place of a duration. `timeout` cancels the awaitable when time
runs out; `Elapsed` is a subclass of `TimeoutError`. `interval` and
`interval_at` raise `ValueError` for a period that is not positive.
`Interval.tick()` returns the instant it was due for, counting time spent
between calls.

## Addresses

`ringio.addrs.to_sock_addrs` turns an address into a list of `SockAddr`
values (an address family plus the address as the `socket` module takes it).
It accepts a `SockAddr`, a sequence of them, `"host:port"` and
`"[v6]:port"` strings, `(host, port)` tuples whose host is a string or an
`ipaddress` object, and IPv6 `(host, port, flowinfo, scope_id)` tuples.
Host names are resolved with `getaddrinfo`. `SockAddr.unix(path)` builds the
address of a Unix domain socket.

`each_addr(addr, func)` and `each_addr_async(addr, func)` try each resolved
address in turn and return the first result that does not raise `OSError`;
if every attempt fails the last error is raised, and an address that
resolves to nothing raises `OSError` with `EINVAL`.

## Sockets

`ringio.sockets.Socket` wraps a non-blocking `socket.socket`. Anything that
may wait — `connect_async`, `accept`, `recv`, `recv_exact`, `recv_vectored`,
`send`, `send_all`, `send_vectored`, `recv_from`, `recv_from_vectored`,
`send_to`, `send_to_vectored` — is a coroutine. `recv_exact` raises
`EOFError` if the stream ends early. Sockets are context managers.

A TCP round trip:

```python
import socket

from ringio.addrs import to_sock_addrs
from ringio.runtime import block_on, spawn
from ringio.sockets import Socket

async def main():
    addr = to_sock_addrs("127.0.0.1:0")[0]
    with Socket.bind(addr, socket.SOCK_STREAM) as listener:
        listener.listen(128)
        accepting = spawn(listener.accept())
        with Socket.new(socket.AF_INET, socket.SOCK_STREAM) as client:
            await client.connect_async(listener.local_addr())
            server, _peer = await accepting
            with server:
                await client.send_all(b"test")
                assert await server.recv_exact(4) == b"test"

block_on(main())
```

Datagrams:

```python
import socket

from ringio.addrs import to_sock_addrs
from ringio.runtime import block_on
from ringio.sockets import Socket

async def main():
    addr = to_sock_addrs("127.0.0.1:0")[0]
    first = Socket.bind(addr, socket.SOCK_DGRAM)
    second = Socket.bind(addr, socket.SOCK_DGRAM)
    await first.send_to(b"hello world", second.local_addr())
    data, origin = await second.recv_from(32)
    assert data == b"hello world"
    assert origin == first.local_addr()
    first.close()
    second.close()

block_on(main())
```

## Unix domain sockets

`ringio.unix.UnixListener.bind(path)` listens on a socket file that must not
exist yet; `UnixStream.connect(path)` connects to it. `bind_addr` and
`connect_addr` take any address `to_sock_addrs` accepts. Streams offer the
same receive and send coroutines as `Socket`, plus `shutdown`, `peer_addr`
and `local_addr`.

```python
from ringio.runtime import block_on
from ringio.unix import UnixListener, UnixStream

async def main(path):
    with UnixListener.bind(path) as listener:
        with UnixStream.connect(path) as tx:
            rx, _ = await listener.accept()
            with rx:
                await tx.send_all(b"test")
                assert await rx.recv_exact(4) == b"test"

block_on(main("/tmp/ringio-example.sock"))
```

## Lower level

`ringio.runtime.submit(op)` hands the runtime any object with `fd`, `events`
(a `selectors` mask) and `perform()`; `perform` raises `BlockingIOError`
while it must wait, and the returned future completes with its result or
raises its exception. `ringio.ops` and `ringio.timers` hold the bookkeeping
(`OpRuntime`, `RegisteredOp`, `TimerRuntime`) the runtime is built on.

## What it does not do

- There are no dedicated TCP or UDP listener, stream or datagram classes;
  use `Socket` with `SOCK_STREAM` or `SOCK_DGRAM` as shown above.
- There is no way to wait for process signals such as Ctrl-C.
- There is no command-line program; the package is a library only.
- Everything runs on one thread; each thread gets its own runtime.

## Tests

```
pip install -e ".[test]"
pytest
```