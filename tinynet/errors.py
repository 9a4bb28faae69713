"""Exceptions for failed system calls."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


class TaggedError(OSError):
    """An OS-level error labelled with the operation that was attempted."""

    def __init__(self, attempt: str, error_code: int, message: str) -> None:
        super().__init__(error_code, message)
        self.attempt = attempt
        self.error_code = error_code
        self.message = message

    def __str__(self) -> str:
        return f"{self.attempt}: {self.message}"


class UnixError(TaggedError):
    """A failed system call, described by its errno value."""

    def __init__(self, attempt: str, error_code: int) -> None:
        super().__init__(attempt, error_code, os.strerror(error_code))


def check_system_call(attempt: str, return_value: int) -> int:
    """Return a non-negative result; a negative one is taken as ``-errno`` and raised."""
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def call_checked(attempt: str, func: Callable[..., T], *args: Any) -> T:
    """Call ``func(*args)``, turning an OSError into a UnixError tagged with ``attempt``."""
    try:
        return func(*args)
    except OSError as exc:
        if isinstance(exc, TaggedError):
            raise
        raise UnixError(attempt, exc.errno or 0) from exc