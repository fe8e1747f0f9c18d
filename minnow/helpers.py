"""Small formatting and buffer helpers."""

from __future__ import annotations

from collections.abc import Iterable


def _is_printable(byte: int) -> bool:
    return 0x20 <= byte <= 0x7E


def pretty_print(data: bytes | str, max_length: int = 32) -> str:
    """Escape unprintable bytes and double quotes, stopping near ``max_length``."""
    raw = data.encode() if isinstance(data, str) else bytes(data)
    parts: list[str] = []
    length = 0
    truncated = False
    for byte in raw:
        if length >= max_length:
            truncated = True
            break
        if _is_printable(byte) and byte != ord('"'):
            piece = chr(byte)
        else:
            piece = f"\\x{byte:02x}"
        parts.append(piece)
        length += len(piece)
    result = "".join(parts)
    # Only a very short truncated result gets the ellipsis appended.
    if truncated and len(result) < 3:
        result += "..."
    return result


def concat(buffers: Iterable[bytes | str]) -> bytes | str:
    """Concatenate a sequence of buffers into one."""
    items = list(buffers)
    if items and isinstance(items[0], str):
        return "".join(items)
    return b"".join(bytes(item) for item in items)