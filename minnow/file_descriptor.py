"""A reference-counted handle on a kernel file descriptor."""

from __future__ import annotations

import errno
import os
import sys
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from minnow.errors import UnixError

T = TypeVar("T")

READ_BUFFER_SIZE = 16384

_WOULD_BLOCK = (errno.EAGAIN, errno.EWOULDBLOCK, errno.EINPROGRESS)


class _FDWrapper:
    """The shared state behind every duplicate of one descriptor."""

    __slots__ = ("fd", "eof", "closed", "non_blocking", "read_count", "write_count")

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.closed = False
        self.read_count = 0
        self.write_count = 0
        self.non_blocking = False
        try:
            self.non_blocking = not os.get_blocking(fd)
        except OSError as exc:
            # Nothing to close: mark closed so the finaliser leaves it alone.
            self.closed = True
            raise UnixError("fcntl", exc.errno or 0) from exc

    def check(self, attempt: str, call: Callable[..., T], *args) -> T | int:
        """Run ``call``; a would-block failure on a non-blocking fd yields 0."""
        try:
            return call(*args)
        except OSError as exc:
            if self.non_blocking and exc.errno in _WOULD_BLOCK:
                return 0
            raise UnixError(attempt, exc.errno or 0) from exc

    def close(self) -> None:
        self.check("close", os.close, self.fd)
        self.eof = True
        self.closed = True

    def __del__(self) -> None:
        try:
            if not self.closed:
                self.close()
        except Exception as exc:  # never raise from a finaliser
            sys.stderr.write(f"Exception destructing FDWrapper: {exc}\n")


def _as_bytes(data) -> bytes | memoryview:
    if isinstance(data, str):
        return data.encode()
    return memoryview(data).cast("B")


class FileDescriptor:
    """A handle on a file descriptor; duplicates share state and the fd closes with the last one."""

    def __init__(self, fd: int) -> None:
        self._internal = _FDWrapper(fd)

    @classmethod
    def _from_wrapper(cls, wrapper: _FDWrapper) -> FileDescriptor:
        handle = cls.__new__(cls)
        handle._internal = wrapper
        return handle

    def _check_system_call(self, attempt: str, call: Callable[..., T], *args) -> T | int:
        return self._internal.check(attempt, call, *args)

    def _set_eof(self) -> None:
        self._internal.eof = True

    def _register_read(self) -> None:
        self._internal.read_count += 1

    def _register_write(self) -> None:
        self._internal.write_count += 1

    def read(self, size: int | None = None) -> bytes:
        """Read up to ``size`` bytes (READ_BUFFER_SIZE when not given or zero).

        On a non-blocking descriptor with nothing ready, return ``b""``
        without marking end of file.
        """
        if not size:
            size = READ_BUFFER_SIZE
        try:
            data = os.read(self.fd_num(), size)
        except OSError as exc:
            if self._internal.non_blocking and exc.errno in _WOULD_BLOCK:
                return b""
            raise UnixError("read", exc.errno or 0) from exc
        self._register_read()
        if not data:
            self._internal.eof = True
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        return data

    def readv(self, sizes: Sequence[int]) -> list[bytes]:
        """Scatter-read into buffers of the given sizes; the last one always holds READ_BUFFER_SIZE.

        Buffers past the data read come back shortened or empty. On a
        non-blocking descriptor with nothing ready, return an empty list.
        """
        if not sizes:
            return []
        lengths = [*sizes[:-1], READ_BUFFER_SIZE]
        buffers = [bytearray(length) for length in lengths]
        try:
            bytes_read = os.readv(self.fd_num(), buffers)
        except OSError as exc:
            if self._internal.non_blocking and exc.errno in _WOULD_BLOCK:
                return []
            raise UnixError("read", exc.errno or 0) from exc
        self._register_read()
        if bytes_read > sum(lengths):
            raise RuntimeError("read() read more than requested")

        result: list[bytes] = []
        remaining = bytes_read
        for buf in buffers:
            take = min(remaining, len(buf))
            result.append(bytes(buf[:take]))
            remaining -= take
        return result

    def write(self, data) -> int:
        """Write ``data``, returning the number of bytes written."""
        return self.writev([data])

    def writev(self, buffers: Iterable) -> int:
        """Gather-write ``buffers``, returning the number of bytes written."""
        views = [_as_bytes(buf) for buf in buffers]
        total_size = sum(len(view) for view in views)
        written = self._check_system_call("writev", os.writev, self.fd_num(), views)
        self._register_write()
        if written == 0 and total_size != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total_size:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        """Close the underlying descriptor for every duplicate."""
        self._internal.close()

    def duplicate(self) -> FileDescriptor:
        """Return another handle sharing this descriptor and its state."""
        return type(self)._from_wrapper(self._internal)

    def set_blocking(self, blocking: bool) -> None:
        """Put the descriptor in blocking (True) or non-blocking (False) mode."""
        self._check_system_call("fcntl", os.set_blocking, self.fd_num(), blocking)
        self._internal.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._internal.fd

    def fileno(self) -> int:
        return self._internal.fd

    def eof(self) -> bool:
        return self._internal.eof

    def closed(self) -> bool:
        return self._internal.closed

    def read_count(self) -> int:
        return self._internal.read_count

    def write_count(self) -> int:
        return self._internal.write_count

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, *exc_info) -> None:
        if not self.closed():
            self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(fd={self.fd_num()}, eof={self.eof()}, closed={self.closed()})"