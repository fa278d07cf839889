"""Non-blocking sockets whose operations are driven by the runtime."""

from __future__ import annotations

import errno
import functools
import os
import selectors
import socket
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .addrs import SockAddr
from .runtime import submit

_IN_PROGRESS = frozenset(
    code
    for code in (
        errno.EINPROGRESS,
        errno.EWOULDBLOCK,
        errno.EALREADY,
        getattr(errno, "WSAEWOULDBLOCK", None),
    )
    if code is not None
)

Buffer = bytes | bytearray | memoryview | str


@dataclass
class _Call:
    fd: int
    events: int
    func: Callable[[], Any]

    def perform(self) -> Any:
        return self.func()


class _Connect:
    """A non-blocking connect finished once the socket turns writable."""

    events = selectors.EVENT_WRITE

    def __init__(self, sock: socket.socket, address: Any) -> None:
        self.fd = sock.fileno()
        self._sock = sock
        self._address = address
        self._started = False

    def perform(self) -> None:
        if not self._started:
            self._started = True
            err = self._sock.connect_ex(self._address)
            if err in _IN_PROGRESS:
                raise BlockingIOError(err, os.strerror(err))
        else:
            err = self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if err:
            raise OSError(err, os.strerror(err))


def _as_bytes(data: Buffer) -> memoryview:
    if isinstance(data, str):
        data = data.encode()
    return memoryview(data).cast("B")


def _check_sizes(sizes: Iterable[int]) -> list[int]:
    sizes = list(sizes)
    if any(size < 0 for size in sizes):
        raise ValueError("buffer sizes must not be negative")
    return sizes


def _scatter(data: bytes, sizes: list[int]) -> list[bytes]:
    view = memoryview(data)
    parts = []
    for size in sizes:
        parts.append(bytes(view[:size]))
        view = view[size:]
    return parts


class Socket:
    """A non-blocking socket; every operation that may wait is awaitable."""

    def __init__(self, sock: socket.socket) -> None:
        sock.setblocking(False)
        self._sock = sock

    @classmethod
    def new(cls, family: int, kind: int, proto: int | None = None) -> Socket:
        return cls(socket.socket(family, kind, proto or 0))

    @classmethod
    def bind(cls, addr: SockAddr, kind: int, proto: int | None = None) -> Socket:
        sock = cls.new(addr.family, kind, proto)
        try:
            sock._sock.bind(addr.address)
        except BaseException:
            sock.close()
            raise
        return sock

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(fd={self.fileno()}, family={self.family!r})"

    @property
    def family(self) -> int:
        return self._sock.family

    def fileno(self) -> int:
        return self._sock.fileno()

    def try_clone(self) -> Socket:
        """A new, independently closable handle to the same socket."""
        return Socket(self._sock.dup())

    def peer_addr(self) -> SockAddr:
        return SockAddr(self._sock.family, self._sock.getpeername())

    def local_addr(self) -> SockAddr:
        return SockAddr(self._sock.family, self._sock.getsockname())

    def listen(self, backlog: int) -> None:
        self._sock.listen(backlog)

    def shutdown(self, how: int) -> None:
        self._sock.shutdown(how)

    def connect(self, addr: SockAddr) -> None:
        self._sock.connect(addr.address)

    def close(self) -> None:
        self._sock.close()

    async def _run(self, events: int, func: Callable[..., Any], *args: Any) -> Any:
        op = _Call(self._sock.fileno(), events, functools.partial(func, *args))
        return await submit(op)

    async def connect_async(self, addr: SockAddr) -> None:
        await submit(_Connect(self._sock, addr.address))

    async def accept(self) -> tuple[Socket, SockAddr]:
        conn, raw = await self._run(selectors.EVENT_READ, self._sock.accept)
        return Socket(conn), SockAddr(self._sock.family, raw)

    async def recv(self, size: int) -> bytes:
        """Receive at most ``size`` bytes; an empty result means end of stream."""
        return await self._run(selectors.EVENT_READ, self._sock.recv, size)

    async def recv_exact(self, size: int) -> bytes:
        """Receive exactly ``size`` bytes, raising EOFError if the stream ends first."""
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = await self.recv(remaining)
            if not chunk:
                raise EOFError("failed to fill whole buffer")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    async def recv_vectored(self, sizes: Iterable[int]) -> list[bytes]:
        """Receive into buffers of the given sizes, each returned as far as filled."""
        sizes = _check_sizes(sizes)
        return _scatter(await self.recv(sum(sizes)), sizes)

    async def send(self, data: Buffer) -> int:
        return await self._run(selectors.EVENT_WRITE, self._sock.send, _as_bytes(data))

    async def send_all(self, data: Buffer) -> int:
        view = _as_bytes(data)
        total = 0
        while total < len(view):
            written = await self.send(view[total:])
            if written == 0:
                raise BrokenPipeError(errno.EPIPE, "failed to write whole buffer")
            total += written
        return total

    async def send_vectored(self, buffers: Iterable[Buffer]) -> int:
        return await self.send(b"".join(_as_bytes(b) for b in buffers))

    async def recv_from(self, size: int) -> tuple[bytes, SockAddr]:
        data, raw = await self._run(selectors.EVENT_READ, self._sock.recvfrom, size)
        return data, SockAddr(self._sock.family, raw)

    async def recv_from_vectored(self, sizes: Iterable[int]) -> tuple[list[bytes], SockAddr]:
        sizes = _check_sizes(sizes)
        data, addr = await self.recv_from(sum(sizes))
        return _scatter(data, sizes), addr

    async def send_to(self, data: Buffer, addr: SockAddr) -> int:
        return await self._run(
            selectors.EVENT_WRITE, self._sock.sendto, _as_bytes(data), addr.address
        )

    async def send_to_vectored(self, buffers: Iterable[Buffer], addr: SockAddr) -> int:
        return await self.send_to(b"".join(_as_bytes(b) for b in buffers), addr)