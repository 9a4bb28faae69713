import errno
import select
import socket

import pytest

from tinynet.address import Address
from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor
from tinynet.sockets import LocalStreamSocket, TCPSocket, UDPSocket

LOOPBACK = "127.0.0.1"


def _listening_server():
    server = TCPSocket()
    server.set_reuseaddr()
    server.bind(Address(LOOPBACK))
    server.listen()
    return server


def _unused_tcp_address():
    probe = TCPSocket()
    probe.bind(Address(LOOPBACK))
    address = probe.local_address()
    probe.close()
    return address


def test_bind_sets_local_address():
    with UDPSocket() as sock:
        sock.bind(Address(LOOPBACK))
        local = sock.local_address()
        assert local.ip() == LOOPBACK
        assert local.port() > 0


def test_udp_sendto_and_recv():
    with UDPSocket() as receiver, UDPSocket() as sender:
        receiver.bind(Address(LOOPBACK))
        sender.bind(Address(LOOPBACK))
        sender.sendto(receiver.local_address(), b"hello")
        source, payload = receiver.recv()
        assert payload == b"hello"
        assert source == sender.local_address()
        assert receiver.read_count() == 1
        assert sender.write_count() == 1


def test_udp_connected_send():
    with UDPSocket() as receiver, UDPSocket() as sender:
        receiver.bind(Address(LOOPBACK))
        sender.connect(receiver.local_address())
        assert sender.peer_address() == receiver.local_address()
        sender.send(b"x")
        assert receiver.recv()[1] == b"x"


def test_nonblocking_recv_with_nothing_waiting():
    with UDPSocket() as sock:
        sock.bind(Address(LOOPBACK))
        sock.set_blocking(False)
        assert sock.recv() is None
        assert sock.read_count() == 0


def test_peer_address_of_unconnected_socket_fails():
    with UDPSocket() as sock:
        with pytest.raises(UnixError) as info:
            sock.peer_address()
        assert info.value.error_code == errno.ENOTCONN


def test_tcp_connect_accept_exchange():
    with _listening_server() as server, TCPSocket() as client:
        client.connect(server.local_address())
        with server.accept() as conn:
            assert conn.peer_address() == client.local_address()
            assert server.read_count() == 1
            client.write(b"ping")
            assert conn.read() == b"ping"


def test_shutdown_write_signals_eof():
    with _listening_server() as server, TCPSocket() as client:
        client.connect(server.local_address())
        with server.accept() as conn:
            client.shutdown(socket.SHUT_WR)
            assert client.write_count() == 1
            assert conn.read() == b""
            assert conn.eof()


def test_shutdown_invalid_how():
    with UDPSocket() as sock:
        with pytest.raises(UnixError) as info:
            sock.shutdown(99)
        assert info.value.error_code == errno.EINVAL


def test_connect_refused():
    address = _unused_tcp_address()
    with TCPSocket() as client:
        with pytest.raises(UnixError) as info:
            client.connect(address)
        assert info.value.error_code == errno.ECONNREFUSED
        assert info.value.attempt == "connect"


def test_throw_if_error_after_nonblocking_connect():
    address = _unused_tcp_address()
    with TCPSocket() as client:
        client.set_blocking(False)
        client.connect(address)
        select.select([], [client.fd_num()], [], 5)
        with pytest.raises(UnixError) as info:
            client.throw_if_error()
        assert info.value.error_code == errno.ECONNREFUSED


def test_set_reuseaddr():
    with TCPSocket() as sock:
        sock.set_reuseaddr()
        with socket.socket(fileno=socket.dup(sock.fd_num())) as view:
            assert view.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) == 1


def test_local_stream_socket_pair():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    with LocalStreamSocket(FileDescriptor(a.detach())) as left, LocalStreamSocket(b.detach()) as right:
        left.write(b"abc")
        assert right.read() == b"abc"


def test_local_stream_socket_shares_state_with_descriptor():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    fd = FileDescriptor(a.detach())
    with LocalStreamSocket(fd) as left, LocalStreamSocket(b.detach()):
        left.write(b"abc")
        assert fd.write_count() == 1


def test_local_stream_socket_rejects_datagram():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
    b.close()
    with pytest.raises(ValueError, match="type mismatch"):
        LocalStreamSocket(FileDescriptor(a.detach()))


def test_local_stream_socket_rejects_inet():
    inet = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    with pytest.raises(ValueError, match="domain mismatch"):
        LocalStreamSocket(inet.detach())