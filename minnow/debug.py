"""Debug message routing with a replaceable handler."""

from __future__ import annotations

import sys
from collections.abc import Callable

DebugHandler = Callable[[str], None]


def _default_debug_handler(message: str) -> None:
    sys.stderr.write(f"DEBUG: {message}\n")


class _HandlerSlot:
    __slots__ = ("handler",)

    def __init__(self) -> None:
        self.handler: DebugHandler = _default_debug_handler


_slot = _HandlerSlot()


def debug_str(message: str) -> None:
    """Send ``message`` to the current debug handler."""
    _slot.handler(message)


def debug(fmt: str, *args, **kwargs) -> None:
    """Format a message with ``str.format`` and send it, unless optimisations are on."""
    if __debug__:
        debug_str(fmt.format(*args, **kwargs))


def set_debug_handler(handler: DebugHandler) -> None:
    """Route debug messages to ``handler``."""
    _slot.handler = handler


def reset_debug_handler() -> None:
    """Route debug messages back to standard error."""
    _slot.handler = _default_debug_handler