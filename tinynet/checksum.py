"""The Internet checksum (ones' complement sum of 16-bit words)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

_MASK32 = 0xFFFFFFFF


class InternetChecksum:
    """Incremental Internet checksum; data may arrive in pieces of any length."""

    def __init__(self, initial: int = 0) -> None:
        self._sum = initial & _MASK32
        self._odd = False

    def add(self, data: Union[BytesLike, Iterable[BytesLike]]) -> None:
        """Add a buffer, or each buffer of an iterable, to the running sum."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            for item in data:
                self.add(item)
            return

        chunk = bytes(data)
        if not chunk:
            return
        total = 0
        rest = chunk
        if self._odd:
            total += rest[0]
            rest = rest[1:]
        total += (sum(rest[0::2]) << 8) + sum(rest[1::2])
        self._sum = (self._sum + total) & _MASK32
        self._odd ^= bool(len(chunk) % 2)

    def value(self) -> int:
        ret = self._sum
        while ret > 0xFFFF:
            ret = (ret >> 16) + (ret & 0xFFFF)
        return ~ret & 0xFFFF