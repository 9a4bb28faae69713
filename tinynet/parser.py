"""Reading and writing big-endian fields over a list of byte buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any, Union

BytesLike = Union[bytes, bytearray, memoryview]
Buffers = Union[BytesLike, Iterable[BytesLike]]


def _as_buffers(buffers: Buffers) -> list[bytes]:
    if isinstance(buffers, (bytes, bytearray, memoryview)):
        return [bytes(buffers)]
    return [bytes(b) for b in buffers]


class Parser:
    """Consumes big-endian integers and byte strings from a sequence of buffers.

    A read past the end of the input does not raise; it marks the parser as
    failed (see :meth:`has_error`) and yields zeros instead.
    """

    def __init__(self, buffers: Buffers) -> None:
        self._buffers: deque[bytes] = deque(b for b in _as_buffers(buffers) if b)
        self._skip = 0
        self._size = sum(len(b) for b in self._buffers)
        self._error = False

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return self._size

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes; stops quietly at the end of the input."""
        while n > 0 and self._buffers:
            front = self._buffers[0]
            take = min(n, len(front) - self._skip)
            self._skip += take
            self._size -= take
            n -= take
            if self._skip == len(front):
                self._buffers.popleft()
                self._skip = 0

    def _check_size(self, n: int) -> bool:
        if n > self._size:
            self._error = True
        return not self._error

    def _take(self, n: int) -> bytes:
        out = bytearray()
        while len(out) < n:
            front = self._buffers[0]
            chunk = front[self._skip : self._skip + n - len(out)]
            out += chunk
            self.remove_prefix(len(chunk))
        return bytes(out)

    def integer(self, width: int) -> int:
        """Read an unsigned big-endian integer of ``width`` bytes."""
        if not self._check_size(width):
            return 0
        return int.from_bytes(self._take(width), "big")

    def string(self, length: int) -> bytes:
        """Read exactly ``length`` raw bytes."""
        if not self._check_size(length):
            return bytes(length)
        return self._take(length)

    def all_remaining(self) -> list[bytes]:
        """Take every unconsumed byte, keeping the buffer boundaries."""
        if not self._buffers:
            return []
        first = self._buffers.popleft()[self._skip :]
        out = [first, *self._buffers]
        self._buffers.clear()
        self._skip = 0
        self._size = 0
        return out

    def all_remaining_bytes(self) -> bytes:
        """Take every unconsumed byte as one bytes object."""
        return b"".join(self.all_remaining())


class Serializer:
    """Builds a list of byte buffers from big-endian integers and raw buffers."""

    def __init__(self, initial: BytesLike = b"") -> None:
        self._output: list[bytes] = []
        self._pending = bytearray(initial)

    def integer(self, value: int, width: int) -> None:
        """Append ``value`` as ``width`` big-endian bytes, truncating high bits."""
        mask = (1 << (8 * width)) - 1
        self._pending += (value & mask).to_bytes(width, "big")

    def buffer(self, data: Buffers) -> None:
        """Append one buffer, or each buffer of an iterable, as separate output pieces."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            self.flush()
            self._output.append(bytes(data))
            return
        for item in data:
            self.buffer(item)

    def flush(self) -> None:
        if self._pending:
            self._output.append(bytes(self._pending))
            self._pending.clear()

    def output(self) -> list[bytes]:
        self.flush()
        return list(self._output)


def serialize(obj: Any) -> list[bytes]:
    """Serialize any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.output()


def parse(obj: Any, buffers: Buffers, *args: Any) -> bool:
    """Parse ``buffers`` into ``obj``; returns True on success."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()