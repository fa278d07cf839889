"""Socket addresses and their resolution."""

from __future__ import annotations

import errno
import ipaddress
import os
import socket
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple, TypeVar

T = TypeVar("T")

_AF_UNIX = getattr(socket, "AF_UNIX", None)


class SockAddr(NamedTuple):
    """An address family together with the address as the socket module takes it."""

    family: int
    address: Any

    @classmethod
    def unix(cls, path: str | bytes | os.PathLike[Any]) -> SockAddr:
        """The address of a Unix domain socket at ``path``."""
        if _AF_UNIX is None:
            raise OSError(errno.EAFNOSUPPORT, "Unix domain sockets are not supported")
        return cls(_AF_UNIX, os.fspath(path))

    @property
    def is_ipv4(self) -> bool:
        return self.family == socket.AF_INET

    @property
    def is_ipv6(self) -> bool:
        return self.family == socket.AF_INET6

    @property
    def is_unix(self) -> bool:
        return _AF_UNIX is not None and self.family == _AF_UNIX

    @property
    def host(self) -> str | None:
        return self.address[0] if self.is_ipv4 or self.is_ipv6 else None

    @property
    def port(self) -> int | None:
        return self.address[1] if self.is_ipv4 or self.is_ipv6 else None

    def __str__(self) -> str:
        if self.is_ipv6:
            return f"[{self.address[0]}]:{self.address[1]}"
        if self.is_ipv4:
            return f"{self.address[0]}:{self.address[1]}"
        return str(self.address)


def _check_port(port: Any) -> int:
    if isinstance(port, bool) or not isinstance(port, int):
        raise TypeError(f"port must be an int, not {type(port).__name__}")
    if not 0 <= port <= 0xFFFF:
        raise ValueError("invalid port value")
    return port


def _split_host_port(text: str) -> tuple[str, int]:
    if text.startswith("["):
        close = text.find("]")
        if close < 0:
            raise ValueError("invalid socket address")
        host, rest = text[1:close], text[close + 1 :]
        if not rest.startswith(":"):
            raise ValueError("invalid socket address")
        port_text = rest[1:]
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep:
            raise ValueError("invalid socket address")
    if not host:
        raise ValueError("invalid socket address")
    if not (port_text.isascii() and port_text.isdigit()):
        raise ValueError("invalid port value")
    return host, _check_port(int(port_text))


def _from_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address, port: int) -> SockAddr:
    if ip.version == 4:
        return SockAddr(socket.AF_INET, (str(ip), port))
    return SockAddr(socket.AF_INET6, (str(ip), port, 0, 0))


def _resolve(host: Any, port: int) -> list[SockAddr]:
    if isinstance(host, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return [_from_ip(host, port)]
    if not isinstance(host, str):
        raise TypeError(f"host must be a str or an IP address, not {type(host).__name__}")
    try:
        return [_from_ip(ipaddress.ip_address(host), port)]
    except ValueError:
        pass
    found: list[SockAddr] = []
    for family, _, _, _, raw in socket.getaddrinfo(host, port, type=socket.SOCK_STREAM):
        if family not in (socket.AF_INET, socket.AF_INET6):
            continue
        candidate = SockAddr(family, raw)
        if candidate not in found:
            found.append(candidate)
    return found


def to_sock_addrs(addr: Any) -> list[SockAddr]:
    """Resolve ``addr`` to the socket addresses it stands for.

    Accepted forms are a :class:`SockAddr`, a sequence of them, a
    ``"host:port"`` string (``"[v6]:port"`` for IPv6), a ``(host, port)``
    tuple whose host is a string or an IP address object, and an IPv6
    ``(host, port, flowinfo, scope_id)`` tuple.
    """
    if isinstance(addr, SockAddr):
        return [addr]
    if isinstance(addr, (list, tuple)) and all(isinstance(a, SockAddr) for a in addr):
        return list(addr)
    if isinstance(addr, str):
        return _resolve(*_split_host_port(addr))
    if isinstance(addr, tuple) and len(addr) == 2:
        host, port = addr
        return _resolve(host, _check_port(port))
    if isinstance(addr, tuple) and len(addr) == 4:
        host, port, flowinfo, scope_id = addr
        ip = host if isinstance(host, ipaddress.IPv6Address) else ipaddress.IPv6Address(host)
        return [SockAddr(socket.AF_INET6, (str(ip), _check_port(port), flowinfo, scope_id))]
    raise TypeError(f"cannot use {type(addr).__name__} as a socket address")


def _unresolved() -> OSError:
    return OSError(errno.EINVAL, "could not resolve to any addresses")


def each_addr(addr: Any, func: Callable[[SockAddr], T]) -> T:
    """Call ``func`` on each resolved address until one does not raise OSError."""
    last_error: OSError | None = None
    for sock_addr in to_sock_addrs(addr):
        try:
            return func(sock_addr)
        except OSError as exc:
            last_error = exc
    raise last_error if last_error is not None else _unresolved()


async def each_addr_async(addr: Any, func: Callable[[SockAddr], Awaitable[T]]) -> T:
    """Await ``func`` on each resolved address until one does not raise OSError."""
    last_error: OSError | None = None
    for sock_addr in to_sock_addrs(addr):
        try:
            return await func(sock_addr)
        except OSError as exc:
            last_error = exc
    raise last_error if last_error is not None else _unresolved()