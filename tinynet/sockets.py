"""Network sockets built on the shared file-descriptor handle."""

from __future__ import annotations

import errno
import socket
import struct
from collections.abc import Callable
from typing import Optional, TypeVar, Union

from tinynet.address import Address
from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor

T = TypeVar("T")

SO_BINDTODEVICE = 25
SOL_PACKET = 263
PACKET_ADD_MEMBERSHIP = 1
PACKET_MR_PROMISC = 1


class Socket(FileDescriptor):
    """Base class for network sockets; normally used through a subclass."""

    def __init__(
        self,
        domain: int,
        sock_type: int,
        protocol: int = 0,
        *,
        fd: Union[FileDescriptor, int, None] = None,
    ) -> None:
        """Create a new socket, or adopt ``fd`` after checking its domain, type and protocol."""
        self._domain = domain
        self._type = sock_type
        self._protocol = protocol

        if fd is None:
            try:
                sock = socket.socket(domain, sock_type, protocol)
            except OSError as exc:
                raise UnixError("socket", exc.errno or 0) from exc
            super().__init__(sock.detach())
            return

        if isinstance(fd, FileDescriptor):
            # share the descriptor and its state with the given handle
            self._handle = fd.duplicate()._handle
        else:
            super().__init__(fd)

        for option, expected, what in (
            (socket.SO_DOMAIN, domain, "domain"),
            (socket.SO_TYPE, sock_type, "type"),
            (socket.SO_PROTOCOL, protocol, "protocol"),
        ):
            if self._getsockopt(socket.SOL_SOCKET, option) != expected:
                raise ValueError(f"socket {what} mismatch")

    def _op(self, attempt: str, action: Callable[[socket.socket], T]) -> Optional[T]:
        """Run ``action`` on a temporary socket object over our descriptor."""
        sock = socket.socket(self._domain, self._type, self._protocol, fileno=self.fd_num())
        try:
            return self._call(attempt, action, sock)
        finally:
            sock.detach()

    def _getsockopt(self, level: int, option: int) -> int:
        return self._op("getsockopt", lambda s: s.getsockopt(level, option)) or 0

    def _setsockopt(self, level: int, option: int, value: Union[int, bytes]) -> None:
        self._op("setsockopt", lambda s: s.setsockopt(level, option, value))

    def _address(self, attempt: str, action: Callable[[socket.socket], object]) -> Address:
        return Address.from_sockaddr(self._domain, self._op(attempt, action))

    def bind(self, address: Address) -> None:
        self._op("bind", lambda s: s.bind(address.sockaddr()))

    def bind_to_device(self, device_name: str) -> None:
        self._setsockopt(socket.SOL_SOCKET, SO_BINDTODEVICE, device_name.encode())

    def connect(self, address: Address) -> None:
        """Connect to a peer; on a non-blocking socket this may still be in progress."""
        self._op("connect", lambda s: s.connect(address.sockaddr()))

    def shutdown(self, how: int) -> None:
        """Shut down reading, writing or both (``socket.SHUT_RD``/``SHUT_WR``/``SHUT_RDWR``)."""
        self._op("shutdown", lambda s: s.shutdown(how))
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise ValueError("Socket.shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._address("getsockname", lambda s: s.getsockname())

    def peer_address(self) -> Address:
        return self._address("getpeername", lambda s: s.getpeername())

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner, at some cost in robustness."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise the socket's pending error, if any (seen on non-blocking sockets)."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> Optional[tuple[Address, bytes]]:
        """Receive one datagram and its sender's address.

        Returns None on a non-blocking socket with nothing waiting.
        """
        buf = bytearray(self.READ_BUFFER_SIZE)
        result = self._op("recvfrom", lambda s: s.recvfrom_into(buf, len(buf), socket.MSG_TRUNC))
        if result is None:
            return None
        length, source = result
        if length > len(buf):
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return Address.from_sockaddr(self._domain, source), bytes(buf[:length])

    def sendto(self, destination: Address, payload: bytes) -> None:
        self._op("sendto", lambda s: s.sendto(payload, destination.sockaddr()))
        self._register_write()

    def send(self, payload: bytes) -> None:
        """Send to the connected peer (call connect() first)."""
        self._op("send", lambda s: s.send(payload))
        self._register_write()


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """A TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    @classmethod
    def _adopt(cls, fd: int) -> TCPSocket:
        sock = cls.__new__(cls)
        Socket.__init__(sock, socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, fd=fd)
        return sock

    def listen(self, backlog: int = 16) -> None:
        self._op("listen", lambda s: s.listen(backlog))

    def accept(self) -> TCPSocket:
        """Wait for and return a new connection."""
        self._register_read()
        result = self._op("accept", lambda s: s.accept())
        if result is None:
            raise UnixError("accept", errno.EAGAIN)
        conn, _ = result
        return TCPSocket._adopt(conn.detach())


class PacketSocket(DatagramSocket):
    """A raw packet socket (needs privileges)."""

    def __init__(self, type: int, protocol: int) -> None:
        super().__init__(socket.AF_PACKET, type, protocol)

    def set_promiscuous(self) -> None:
        """Receive every frame seen by the bound interface."""
        local = self.local_address()
        if local.family != socket.AF_PACKET:
            raise ValueError("Address conversion failure")
        ifindex = socket.if_nametoindex(local.sockaddr()[0])
        request = struct.pack("iHH8s", ifindex, PACKET_MR_PROMISC, 0, b"")
        self._setsockopt(SOL_PACKET, PACKET_ADD_MEMBERSHIP, request)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket built from an existing descriptor."""

    def __init__(self, fd: Union[FileDescriptor, int]) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_STREAM, fd=fd)