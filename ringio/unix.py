"""Unix domain stream sockets."""

from __future__ import annotations

import os
import socket
from collections.abc import Iterable
from typing import Any

from .addrs import SockAddr, each_addr
from .sockets import Buffer, Socket

_BACKLOG = 1024


class UnixListener:
    """A Unix domain socket listening for connections."""

    def __init__(self, inner: Socket) -> None:
        self._inner = inner

    @classmethod
    def bind(cls, path: str | bytes | os.PathLike[Any]) -> UnixListener:
        """Listen on the socket file ``path``, which must not exist yet."""
        return cls.bind_addr(SockAddr.unix(path))

    @classmethod
    def bind_addr(cls, addr: Any) -> UnixListener:
        """Listen on the first of the given addresses that can be bound."""

        def attempt(sock_addr: SockAddr) -> UnixListener:
            sock = Socket.bind(sock_addr, socket.SOCK_STREAM)
            try:
                sock.listen(_BACKLOG)
            except BaseException:
                sock.close()
                raise
            return cls(sock)

        return each_addr(addr, attempt)

    def __enter__(self) -> UnixListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fileno(self) -> int:
        return self._inner.fileno()

    def try_clone(self) -> UnixListener:
        return UnixListener(self._inner.try_clone())

    async def accept(self) -> tuple[UnixStream, SockAddr]:
        """Wait for a connection; return the stream and the peer's address."""
        sock, addr = await self._inner.accept()
        return UnixStream(sock), addr

    def local_addr(self) -> SockAddr:
        return self._inner.local_addr()

    def close(self) -> None:
        self._inner.close()


class UnixStream:
    """A connected Unix domain stream socket."""

    def __init__(self, inner: Socket) -> None:
        self._inner = inner

    @classmethod
    def connect(cls, path: str | bytes | os.PathLike[Any]) -> UnixStream:
        """Connect to a listener at the socket file ``path``."""
        return cls.connect_addr(SockAddr.unix(path))

    @classmethod
    def connect_addr(cls, addr: Any) -> UnixStream:
        """Connect to the first of the given addresses that accepts."""

        def attempt(sock_addr: SockAddr) -> UnixStream:
            sock = Socket.new(sock_addr.family, socket.SOCK_STREAM)
            try:
                sock.connect(sock_addr)
            except BaseException:
                sock.close()
                raise
            return cls(sock)

        return each_addr(addr, attempt)

    def __enter__(self) -> UnixStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fileno(self) -> int:
        return self._inner.fileno()

    def try_clone(self) -> UnixStream:
        return UnixStream(self._inner.try_clone())

    def peer_addr(self) -> SockAddr:
        return self._inner.peer_addr()

    def local_addr(self) -> SockAddr:
        return self._inner.local_addr()

    def shutdown(self, how: int) -> None:
        self._inner.shutdown(how)

    async def recv(self, size: int) -> bytes:
        return await self._inner.recv(size)

    async def recv_exact(self, size: int) -> bytes:
        return await self._inner.recv_exact(size)

    async def recv_vectored(self, sizes: Iterable[int]) -> list[bytes]:
        return await self._inner.recv_vectored(sizes)

    async def send(self, data: Buffer) -> int:
        return await self._inner.send(data)

    async def send_all(self, data: Buffer) -> int:
        return await self._inner.send_all(data)

    async def send_vectored(self, buffers: Iterable[Buffer]) -> int:
        return await self._inner.send_vectored(buffers)

    def close(self) -> None:
        self._inner.close()