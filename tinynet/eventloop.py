"""Waits for events on file descriptors and runs the matching callbacks."""

from __future__ import annotations

import errno
import select
import socket
import sys
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

from tinynet.errors import UnixError
from tinynet.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

MAX_CATEGORIES = 64
_MAX_ITERATIONS = 128


class Direction(IntEnum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = select.POLLIN
    OUT = select.POLLOUT


class Result(Enum):
    """Outcome of one call to :meth:`EventLoop.wait_next_event`."""

    SUCCESS = "success"  # a rule was served
    TIMEOUT = "timeout"  # nothing happened before the timeout
    EXIT = "exit"  # no rule is left that could ever fire


class BusyWaitError(RuntimeError):
    """A rule stayed interested without making any progress."""


def _always() -> bool:
    return True


def _never() -> bool:
    return False


def _nothing() -> None:
    return None


@dataclass(eq=False)
class _Rule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = False


@dataclass(eq=False)
class _FDRule(_Rule):
    fd: Optional[FileDescriptor] = None
    direction: Direction = Direction.IN
    cancel: Callback = _nothing
    recover: Interest = _never

    def service_count(self) -> int:
        assert self.fd is not None
        return self.fd.read_count() if self.direction is Direction.IN else self.fd.write_count()


class RuleHandle:
    """Lets the owner of a rule cancel it; does not keep the rule alive."""

    def __init__(self, rule: _Rule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule; its cancel callback is not called."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


class EventLoop:
    """Runs callbacks for plain rules and for rules tied to file descriptors."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._rules: list[_Rule] = []

    def add_category(self, name: str) -> int:
        """Register a rule category by name and return its id."""
        if len(self._categories) >= MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: Union[int, str]) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def add_rule(
        self,
        category: Union[int, str],
        callback: Callback,
        interest: Interest = _always,
    ) -> RuleHandle:
        """Add a rule run whenever ``interest()`` is true.

        ``category`` is an id from :meth:`add_category`, or a name for a new category.
        """
        rule = _Rule(self._category_id(category), interest, callback)
        self._rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: Union[int, str],
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Callback = _nothing,
        recover: Interest = _never,
    ) -> RuleHandle:
        """Add a rule run when ``fd`` is ready in ``direction`` and ``interest()`` is true.

        ``cancel`` runs when the loop drops the rule (hangup, EOF, error);
        ``recover`` is asked on a descriptor error and returns True to keep the rule.
        """
        rule = _FDRule(
            self._category_id(category),
            interest,
            callback,
            fd=fd.duplicate(),
            direction=direction,
            cancel=cancel,
            recover=recover,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _name(self, rule: _Rule) -> str:
        return self._categories[rule.category_id]

    def _serve_plain_rules(self) -> bool:
        for rule in list(self._rules):
            if rule.cancel_requested:
                self._rules.remove(rule)
                continue
            fired = False
            iterations = 0
            while rule.interest():
                iterations += 1
                if iterations > _MAX_ITERATIONS:
                    raise BusyWaitError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations} iterations"
                    )
                fired = True
                rule.callback()
            if fired:
                return True  # serve only one rule per call
        return False

    def _drop(self, rule: _FDRule, *, notify: bool = True) -> None:
        if notify:
            rule.cancel()
        self._fd_rules.remove(rule)

    def _report_error(self, rule: _FDRule) -> None:
        assert rule.fd is not None
        try:
            sock = socket.socket(fileno=rule.fd.fd_num())
        except OSError as exc:
            if exc.errno == errno.ENOTSOCK:
                print(
                    f'error on polled file descriptor for rule "{self._name(rule)}"',
                    file=sys.stderr,
                )
                return
            raise UnixError("getsockopt", exc.errno or 0) from exc
        try:
            socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno or 0) from exc
        finally:
            sock.detach()
        if socket_error:
            print(
                f'error on polled socket for rule "{self._name(rule)}": '
                f"{errno.errorcode.get(socket_error, socket_error)}",
                file=sys.stderr,
            )

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._serve_plain_rules():
            return Result.SUCCESS

        polled: list[tuple[_FDRule, int]] = []
        for rule in list(self._fd_rules):
            assert rule.fd is not None
            if rule.cancel_requested:
                self._drop(rule, notify=False)
                continue
            if rule.direction is Direction.IN and rule.fd.eof():
                self._drop(rule)
                continue
            if rule.fd.closed():
                self._drop(rule)
                continue
            events = int(rule.direction) if rule.interest() else 0
            polled.append((rule, events))

        if not any(events for _, events in polled):
            return Result.EXIT

        by_fd: dict[int, int] = {}
        for rule, events in polled:
            assert rule.fd is not None
            by_fd[rule.fd.fd_num()] = by_fd.get(rule.fd.fd_num(), 0) | events
        poller = select.poll()
        for fd_num, events in by_fd.items():
            poller.register(fd_num, events)
        try:
            ready = dict(poller.poll(timeout_ms))
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT

        for rule, events in polled:
            assert rule.fd is not None
            revents = ready.get(rule.fd.fd_num(), 0)

            if revents & (select.POLLERR | select.POLLNVAL):
                if not revents & select.POLLNVAL and rule.recover():
                    continue
                self._report_error(rule)
                self._drop(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                self._drop(rule)
                continue

            if poll_ready:
                before = rule.service_count()
                rule.callback()
                if before == rule.service_count() and not rule.fd.closed() and rule.interest():
                    raise BusyWaitError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS