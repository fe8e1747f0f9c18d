"""A bounded in-memory byte stream with separate writer and reader views."""

from __future__ import annotations


class ByteStream:
    """A flow-controlled byte stream holding at most ``capacity`` unread bytes."""

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self._capacity = capacity
        self._buffer = bytearray()
        self._closed = False
        self._pushed = 0
        self._popped = 0
        self._error = False

    def reader(self) -> Reader:
        """Return the reading side of this stream."""
        return Reader(self)

    def writer(self) -> Writer:
        """Return the writing side of this stream."""
        return Writer(self)

    def set_error(self) -> None:
        """Signal that the stream suffered an error."""
        self._error = True

    def has_error(self) -> bool:
        """Report whether the stream has had an error."""
        return self._error


class _StreamView:
    """Shared behaviour of the reader and writer views."""

    __slots__ = ("_stream",)

    def __init__(self, stream: ByteStream) -> None:
        self._stream = stream

    def reader(self) -> Reader:
        return self._stream.reader()

    def writer(self) -> Writer:
        return self._stream.writer()

    def set_error(self) -> None:
        self._stream.set_error()

    def has_error(self) -> bool:
        return self._stream.has_error()


class Writer(_StreamView):
    """The writing side of a ByteStream."""

    __slots__ = ()

    def push(self, data) -> None:
        """Append as much of ``data`` as the available capacity allows."""
        view = memoryview(data).cast("B")
        size = min(len(view), self.available_capacity())
        self._stream._buffer += view[:size]
        self._stream._pushed += size

    def close(self) -> None:
        """Signal that nothing more will be written."""
        self._stream._closed = True

    def is_closed(self) -> bool:
        return self._stream._closed

    def available_capacity(self) -> int:
        return self._stream._capacity - len(self._stream._buffer)

    def bytes_pushed(self) -> int:
        return self._stream._pushed


class Reader(_StreamView):
    """The reading side of a ByteStream."""

    __slots__ = ()

    def peek(self) -> bytes:
        """Return the bytes currently buffered, without removing them."""
        return bytes(self._stream._buffer)

    def pop(self, length: int) -> None:
        """Remove up to ``length`` bytes from the front of the buffer."""
        if length < 0:
            raise ValueError(f"cannot pop a negative length: {length}")
        size = min(length, len(self._stream._buffer))
        del self._stream._buffer[:size]
        self._stream._popped += size

    def is_finished(self) -> bool:
        """True once the stream is closed and fully popped."""
        return self._stream._closed and not self._stream._buffer

    def bytes_buffered(self) -> int:
        return len(self._stream._buffer)

    def bytes_popped(self) -> int:
        return self._stream._popped


def read(reader: Reader, max_len: int) -> bytes:
    """Peek and pop up to ``max_len`` bytes from ``reader``."""
    out = bytearray()
    while reader.bytes_buffered() and len(out) < max_len:
        view = reader.peek()
        if not view:
            raise RuntimeError("Reader.peek() returned empty bytes")
        view = view[: max_len - len(out)]
        out += view
        reader.pop(len(view))
    return bytes(out)