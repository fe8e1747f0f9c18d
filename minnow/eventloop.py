"""An event loop that polls file descriptors and runs rule callbacks."""

from __future__ import annotations

import enum
import errno
import os
import select
import socket
import sys
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field

from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

MAX_CATEGORIES = 64
_MAX_ITERATIONS = 128


class Direction(enum.Enum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = "in"
    OUT = "out"


class Result(enum.Enum):
    """Outcome of one call to EventLoop.wait_next_event."""

    SUCCESS = "success"  # at least one rule was triggered
    TIMEOUT = "timeout"  # no rule was triggered before the timeout
    EXIT = "exit"  # every rule is cancelled or uninterested


def _always() -> bool:
    return True


@dataclass(eq=False, kw_only=True)
class _BasicRule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = field(default=False, init=False)


@dataclass(eq=False, kw_only=True)
class _FDRule(_BasicRule):
    fd: FileDescriptor
    direction: Direction
    cancel: Callback | None = None
    error: Callback | None = None

    def service_count(self) -> int:
        """How often the descriptor has been read or written, by this rule's direction."""
        return self.fd.read_count() if self.direction is Direction.IN else self.fd.write_count()

    def run_cancel(self) -> None:
        """Run the cancel callback, if one was given."""
        if self.cancel is not None:
            self.cancel()

    def run_error(self) -> None:
        """Run the error callback, if one was given."""
        if self.error is not None:
            self.error()


class RuleHandle:
    """A weak handle that can cancel a rule while it is still registered."""

    __slots__ = ("_rule",)

    def __init__(self, rule: _BasicRule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule, without calling its cancel callback."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


class EventLoop:
    """Waits for events on file descriptors and runs the matching callbacks."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._basic_rules: list[_BasicRule] = []

    def add_category(self, name: str) -> int:
        """Register a rule category and return its id."""
        if len(self._categories) >= MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _resolve_category(self, category: int | str) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def add_rule(
        self,
        category: int | str,
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest | None = None,
        cancel: Callback | None = None,
        error: Callback | None = None,
    ) -> RuleHandle:
        """Run ``callback`` when ``fd`` is ready in ``direction`` and ``interest()`` holds.

        ``category`` is a category id, or a name for a new category.
        """
        category_id = self._resolve_category(category)
        rule = _FDRule(
            category_id=category_id,
            interest=interest or _always,
            callback=callback,
            fd=fd.duplicate(),
            direction=direction,
            cancel=cancel,
            error=error,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def add_basic_rule(
        self, category: int | str, callback: Callback, interest: Interest | None = None
    ) -> RuleHandle:
        """Run ``callback`` whenever ``interest()`` holds, with no descriptor involved."""
        category_id = self._resolve_category(category)
        rule = _BasicRule(category_id=category_id, interest=interest or _always, callback=callback)
        self._basic_rules.append(rule)
        return RuleHandle(rule)

    def _name(self, rule: _BasicRule) -> str:
        return self._categories[rule.category_id]

    @staticmethod
    def _discard(rules: list, rule: _BasicRule) -> None:
        if rule in rules:
            rules.remove(rule)

    def _report_poll_error(self, rule: _FDRule) -> None:
        try:
            sock = socket.socket(fileno=rule.fd.fd_num())
        except OSError as exc:
            if exc.errno == errno.ENOTSOCK:
                sys.stderr.write(f'error on polled file descriptor for rule "{self._name(rule)}"\n')
                return
            raise UnixError("getsockopt", exc.errno or 0) from exc
        try:
            socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno or 0) from exc
        finally:
            sock.detach()
        if socket_error:
            sys.stderr.write(
                f'error on polled socket for rule "{self._name(rule)}": {os.strerror(socket_error)}\n'
            )

    def _serve_basic_rules(self) -> bool:
        for rule in list(self._basic_rules):
            if rule.cancel_requested:
                self._discard(self._basic_rules, rule)
                continue
            fired = False
            iterations = 0
            while rule.interest():
                if iterations >= _MAX_ITERATIONS:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations + 1} iterations"
                    )
                iterations += 1
                fired = True
                rule.callback()
            if fired:
                return True
        return False

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve one ready rule, waiting up to ``timeout_ms`` (negative waits forever)."""
        if self._serve_basic_rules():
            return Result.SUCCESS

        polled: list[tuple[_FDRule, int]] = []
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                # Cancelled from outside: the cancel callback is not run.
                self._discard(self._fd_rules, rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                rule.run_cancel()
                self._discard(self._fd_rules, rule)
                continue
            if rule.interest():
                events = select.POLLIN if rule.direction is Direction.IN else select.POLLOUT
            else:
                events = 0  # still polled, so errors are seen
            polled.append((rule, events))

        if not any(events for _, events in polled):
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            masks[rule.fd.fd_num()] = masks.get(rule.fd.fd_num(), 0) | events
        poller = select.poll()
        for fd_num, mask in masks.items():
            poller.register(fd_num, mask)

        try:
            ready = poller.poll(timeout_ms)
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT
        revents_by_fd = dict(ready)

        for rule, events in polled:
            revents = revents_by_fd.get(rule.fd.fd_num(), 0)

            if revents & (select.POLLERR | select.POLLNVAL):
                self._report_poll_error(rule)
                rule.run_error()
                rule.run_cancel()
                self._discard(self._fd_rules, rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                # Only a hangup: nothing more will be readable or writable.
                rule.run_cancel()
                self._discard(self._fd_rules, rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if count_before == rule.service_count() and not rule.fd.closed() and rule.interest():
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS