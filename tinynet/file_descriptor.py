"""A shared, reference-counted handle on a kernel file descriptor."""

from __future__ import annotations

import errno
import os
import sys
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Optional, TypeVar, Union

from tinynet.errors import UnixError

T = TypeVar("T")
BytesLike = Union[bytes, bytearray, memoryview]

_WOULD_BLOCK = (errno.EAGAIN, errno.EWOULDBLOCK, errno.EINPROGRESS)


class _Handle:
    """The state shared by every duplicate of one descriptor; closes it when dropped."""

    def __init__(self, fd: int) -> None:
        self.closed = True  # not owned until the descriptor is known to be valid
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.read_count = 0
        self.write_count = 0
        try:
            self.non_blocking = not os.get_blocking(fd)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc
        self.closed = False

    def close(self) -> None:
        try:
            os.close(self.fd)
        except OSError as exc:
            raise UnixError("close", exc.errno or 0) from exc
        self.eof = self.closed = True

    def __del__(self) -> None:
        if getattr(self, "closed", True):
            return
        try:
            self.close()
        except Exception as exc:  # never raise from a finalizer
            print(f"Exception destructing FDWrapper: {exc}", file=sys.stderr)


class FileDescriptor:
    """A handle on a file descriptor; duplicates share one underlying descriptor.

    The descriptor is closed when the last handle is dropped, or explicitly
    with :meth:`close`.
    """

    READ_BUFFER_SIZE = 16384

    def __init__(self, fd: int) -> None:
        self._handle = _Handle(fd)

    def _call(self, attempt: str, func: Callable[..., T], *args: Any) -> Optional[T]:
        """Run a system call; None means it would block on a non-blocking descriptor."""
        try:
            return func(*args)
        except OSError as exc:
            if self._handle.non_blocking and exc.errno in _WOULD_BLOCK:
                return None
            raise UnixError(attempt, exc.errno or 0) from exc

    def _set_eof(self) -> None:
        self._handle.eof = True

    def _register_read(self) -> None:
        self._handle.read_count += 1

    def _register_write(self) -> None:
        self._handle.write_count += 1

    def read(self, size: Optional[int] = None) -> bytes:
        """Read up to ``size`` bytes (default READ_BUFFER_SIZE).

        On a non-blocking descriptor with nothing to read, returns ``b""``
        without marking EOF or counting a read.
        """
        data = self._call("read", os.read, self.fd_num(), size or self.READ_BUFFER_SIZE)
        if data is None:
            return b""
        self._register_read()
        if not data:
            self._handle.eof = True
        return data

    def read_vectored(self, sizes: Sequence[int]) -> list[bytes]:
        """Scatter one read over buffers of the given sizes.

        The last buffer is always READ_BUFFER_SIZE long. Each returned piece
        is trimmed to what was actually read into it.
        """
        if not sizes:
            return []
        lengths = [*sizes[:-1], self.READ_BUFFER_SIZE]
        buffers = [bytearray(n) for n in lengths]
        count = self._call("read", os.readv, self.fd_num(), buffers)
        if count is None:
            return []
        self._register_read()
        if count > sum(lengths):
            raise RuntimeError("read() read more than requested")
        pieces = []
        remaining = count
        for buf in buffers:
            take = min(remaining, len(buf))
            pieces.append(bytes(buf[:take]))
            remaining -= take
        return pieces

    def write(self, data: Union[BytesLike, Iterable[BytesLike]]) -> int:
        """Write one buffer, or several in one call; returns the bytes written."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            pieces = [bytes(data)]
        else:
            pieces = [bytes(piece) for piece in data]
        total = sum(len(piece) for piece in pieces)

        written = self._call("writev", os.writev, self.fd_num(), pieces) or 0
        self._register_write()

        if written == 0 and total != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        self._handle.close()

    def duplicate(self) -> FileDescriptor:
        """Another handle on the same descriptor and its state."""
        other = FileDescriptor.__new__(FileDescriptor)
        other._handle = self._handle
        return other

    def set_blocking(self, blocking: bool) -> None:
        try:
            os.set_blocking(self.fd_num(), blocking)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc
        self._handle.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._handle.fd

    def eof(self) -> bool:
        return self._handle.eof

    def closed(self) -> bool:
        return self._handle.closed

    def read_count(self) -> int:
        return self._handle.read_count

    def write_count(self) -> int:
        return self._handle.write_count

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, *args: Any) -> None:
        if not self.closed():
            self.close()