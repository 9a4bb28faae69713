"""Socket addresses: IPv4 (and other families) with numeric formatting."""

from __future__ import annotations

import ipaddress
import socket
from typing import Any, Union

from tinynet.errors import TaggedError

SockAddr = Union[tuple, str, bytes]

_MAX_PORT = 0xFFFF


def _lookup(node: str, service: str, flags: int) -> tuple[int, tuple]:
    try:
        results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
    except socket.gaierror as exc:
        raise TaggedError(
            f"getaddrinfo({node}, {service})", exc.errno or 0, exc.strerror or str(exc)
        ) from exc
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    family, _, _, _, sockaddr = results[0]
    return int(family), tuple(sockaddr)


def _normalize(family: int, sockaddr: Any) -> SockAddr:
    if isinstance(sockaddr, list):
        sockaddr = tuple(sockaddr)
    if family == socket.AF_INET:
        if not (isinstance(sockaddr, tuple) and len(sockaddr) == 2):
            raise ValueError("invalid sockaddr for AF_INET")
        return (str(sockaddr[0]), int(sockaddr[1]))
    if family == socket.AF_INET6:
        if not (isinstance(sockaddr, tuple) and len(sockaddr) in (2, 4)):
            raise ValueError("invalid sockaddr for AF_INET6")
        host, port, *rest = sockaddr
        flowinfo, scope_id = rest if rest else (0, 0)
        return (str(host), int(port), int(flowinfo), int(scope_id))
    return sockaddr


class Address:
    """A socket address, normally an IPv4 address and port."""

    __slots__ = ("_family", "_sockaddr")

    def __init__(self, ip: str, port: int = 0) -> None:
        """Build from a dotted-quad string and a numeric port; nothing is resolved."""
        if not 0 <= port <= _MAX_PORT:
            raise ValueError(f"port out of range: {port}")
        self._family, self._sockaddr = _lookup(
            ip, str(port), socket.AI_NUMERICHOST | socket.AI_NUMERICSERV
        )

    @classmethod
    def _make(cls, family: int, sockaddr: SockAddr) -> Address:
        address = cls.__new__(cls)
        address._family = family
        address._sockaddr = sockaddr
        return address

    @classmethod
    def resolve(cls, hostname: str, service: str) -> Address:
        """Resolve a host name and a service name (or numeric strings) to an IPv4 address."""
        family, sockaddr = _lookup(hostname, service, socket.AI_ALL)
        return cls._make(family, sockaddr)

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> Address:
        """Wrap an address as returned by the socket module for ``family``."""
        return cls._make(family, _normalize(family, sockaddr))

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """An IPv4 address (port 0) from its 32-bit numeric value."""
        dotted = str(ipaddress.IPv4Address(ip_address & 0xFFFFFFFF))
        return cls._make(socket.AF_INET, (dotted, 0))

    @property
    def family(self) -> int:
        return self._family

    def ip_port(self) -> tuple[str, int]:
        """Numeric host string and port."""
        if self._family not in (socket.AF_INET, socket.AF_INET6):
            raise TaggedError("getnameinfo", socket.EAI_FAMILY, "ai_family not supported")
        try:
            host, service = socket.getnameinfo(
                self._sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
            )
        except socket.gaierror as exc:
            raise TaggedError("getnameinfo", exc.errno or 0, exc.strerror or str(exc)) from exc
        return host, int(service)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as an integer in host byte order."""
        if self._family != socket.AF_INET:
            raise ValueError("ipv4_numeric called on non-IPV4 address")
        return int(ipaddress.IPv4Address(self._sockaddr[0]))

    def sockaddr(self) -> SockAddr:
        """The address in the form the socket module expects."""
        return self._sockaddr

    def __str__(self) -> str:
        ip, port = self.ip_port()
        return f"{ip}:{port}"

    def __repr__(self) -> str:
        return f"Address(family={self._family}, sockaddr={self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))