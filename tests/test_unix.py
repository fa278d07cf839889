import socket

import pytest

from ringio.addrs import SockAddr
from ringio.runtime import block_on
from ringio.unix import UnixListener, UnixStream


@pytest.fixture
def sock_file(tmp_path):
    return tmp_path / "s.sock"


def test_send_all_and_recv_exact(sock_file):
    with UnixListener.bind(sock_file) as listener, UnixStream.connect(sock_file) as tx:

        async def main():
            rx, _ = await listener.accept()
            with rx:
                await tx.send_all("test")
                return await rx.recv_exact(4)

        assert block_on(main()) == b"test"


def test_listener_local_addr_is_path(sock_file):
    with UnixListener.bind(sock_file) as listener:
        assert listener.local_addr() == SockAddr.unix(sock_file)


def test_stream_peer_addr_is_listener_path(sock_file):
    with UnixListener.bind(sock_file) as listener, UnixStream.connect(sock_file) as tx:
        assert tx.peer_addr() == listener.local_addr()


def test_bind_addr_and_connect_addr(sock_file):
    addr = SockAddr.unix(sock_file)
    with UnixListener.bind_addr(addr) as listener, UnixStream.connect_addr(addr) as tx:

        async def main():
            rx, _ = await listener.accept()
            with rx:
                await rx.send_all(b"pong")
                return await tx.recv_exact(4)

        assert block_on(main()) == b"pong"


def test_vectored_round_trip(sock_file):
    with UnixListener.bind(sock_file) as listener, UnixStream.connect(sock_file) as tx:

        async def main():
            rx, _ = await listener.accept()
            with rx:
                sent = await tx.send_vectored([b"ab", b"cdef"])
                data = await rx.recv_exact(sent)
                return sent, data

        sent, data = block_on(main())
        assert sent == 6
        assert data == b"abcdef"


def test_clone_writes_to_same_connection(sock_file):
    with UnixListener.bind(sock_file) as listener, UnixStream.connect(sock_file) as tx:
        clone = tx.try_clone()

        async def main():
            rx, _ = await listener.accept()
            with rx, clone:
                await clone.send_all(b"clone")
                return await rx.recv_exact(5)

        assert block_on(main()) == b"clone"


def test_shutdown_ends_stream(sock_file):
    with UnixListener.bind(sock_file) as listener, UnixStream.connect(sock_file) as tx:

        async def main():
            rx, _ = await listener.accept()
            with rx:
                await tx.send_all(b"ab")
                tx.shutdown(socket.SHUT_WR)
                await rx.recv_exact(4)

        with pytest.raises(EOFError):
            block_on(main())


def test_recv_after_peer_close_is_empty(sock_file):
    with UnixListener.bind(sock_file) as listener:
        tx = UnixStream.connect(sock_file)

        async def main():
            rx, _ = await listener.accept()
            with rx:
                tx.close()
                return await rx.recv(16)

        assert block_on(main()) == b""


def test_connect_without_listener(sock_file):
    with pytest.raises(OSError):
        UnixStream.connect(sock_file)


def test_bind_existing_path_fails(sock_file):
    with UnixListener.bind(sock_file):
        with pytest.raises(OSError):
            UnixListener.bind(sock_file)