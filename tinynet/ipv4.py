"""IPv4 headers and datagrams (IP options are skipped, not interpreted)."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import ClassVar

from tinynet.checksum import InternetChecksum
from tinynet.parser import Parser, Serializer


def _dotted(value: int) -> str:
    return str(ipaddress.IPv4Address(value & 0xFFFFFFFF))


@dataclass
class IPv4Header:
    """IPv4 datagram header."""

    LENGTH: ClassVar[int] = 20
    DEFAULT_TTL: ClassVar[int] = 128
    PROTO_TCP: ClassVar[int] = 6

    ver: int = 4
    hlen: int = 5  # in 32-bit words
    tos: int = 0
    length: int = 0  # total length of the datagram
    identification: int = 0
    df: bool = True
    mf: bool = False
    offset: int = 0
    ttl: int = 128
    proto: int = 6
    checksum: int = 0
    src: int = 0
    dst: int = 0

    def payload_length(self) -> int:
        return (self.length - 4 * self.hlen) & 0xFFFF

    def pseudo_checksum(self) -> int:
        """Pseudo-header contribution to a TCP checksum."""
        total = (self.src >> 16) + (self.src & 0xFFFF)
        total += (self.dst >> 16) + (self.dst & 0xFFFF)
        total += self.proto
        total += self.payload_length()
        return total & 0xFFFFFFFF

    def compute_checksum(self) -> None:
        """Set the checksum field to the correct value for the header."""
        self.checksum = 0
        serializer = Serializer()
        self.serialize(serializer)
        check = InternetChecksum()
        check.add(serializer.output())
        self.checksum = check.value()

    def parse(self, parser: Parser) -> None:
        first = parser.integer(1)
        self.ver = first >> 4
        self.hlen = first & 0x0F
        self.tos = parser.integer(1)
        self.length = parser.integer(2)
        self.identification = parser.integer(2)

        fo_val = parser.integer(2)
        self.df = bool(fo_val & 0x4000)
        self.mf = bool(fo_val & 0x2000)
        self.offset = fo_val & 0x1FFF

        self.ttl = parser.integer(1)
        self.proto = parser.integer(1)
        self.checksum = parser.integer(2)
        self.src = parser.integer(4)
        self.dst = parser.integer(4)

        if self.ver != 4:
            parser.set_error()
        if self.hlen < 5:
            parser.set_error()
        if parser.has_error():
            return

        parser.remove_prefix(self.hlen * 4 - self.LENGTH)

        given = self.checksum
        self.compute_checksum()
        if self.checksum != given:
            parser.set_error()

    def serialize(self, serializer: Serializer) -> None:
        """Write the header as it stands; the checksum is not recomputed."""
        if self.ver != 4:
            raise ValueError("wrong IP version")
        serializer.integer((self.ver << 4) | (self.hlen & 0xF), 1)
        serializer.integer(self.tos, 1)
        serializer.integer(self.length, 2)
        serializer.integer(self.identification, 2)
        fo_val = (0x4000 if self.df else 0) | (0x2000 if self.mf else 0) | (self.offset & 0x1FFF)
        serializer.integer(fo_val, 2)
        serializer.integer(self.ttl, 1)
        serializer.integer(self.proto, 1)
        serializer.integer(self.checksum, 2)
        serializer.integer(self.src, 4)
        serializer.integer(self.dst, 4)

    def __str__(self) -> str:
        ttl_part = "" if self.ttl >= 10 else f"ttl={self.ttl}, "
        return (
            f"IPv{self.ver:x}, len={self.length}, protocol={self.proto}, {ttl_part}"
            f"src={_dotted(self.src)}, dst={_dotted(self.dst)}"
        )


@dataclass
class IPv4Datagram:
    """An IPv4 header followed by its payload buffers."""

    header: IPv4Header = field(default_factory=IPv4Header)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        for piece in self.payload:
            serializer.buffer(piece)


InternetDatagram = IPv4Datagram