"""Copy standard input to a socket and the socket to standard output."""

from __future__ import annotations

import socket
import sys

from minnow.byte_stream import ByteStream
from minnow.eventloop import Direction, EventLoop, Result
from minnow.file_descriptor import FileDescriptor
from minnow.sockets import Socket

BUFFER_SIZE = 1048576


class _StreamCopy:
    """The state shared by the four copying rules."""

    def __init__(
        self, sock: Socket, peer_name: str, input_fd: FileDescriptor, output_fd: FileDescriptor
    ) -> None:
        self.sock = sock
        self.peer_name = peer_name
        self.input = input_fd
        self.output = output_fd
        self.outbound = ByteStream(BUFFER_SIZE)
        self.inbound = ByteStream(BUFFER_SIZE)
        self.outbound_shutdown = False
        self.inbound_shutdown = False

    def _fail_both(self, message: str) -> None:
        sys.stderr.write(f"DEBUG: {message}\n")
        self.outbound.set_error()
        self.inbound.set_error()

    # rule 1: stdin -> outbound stream
    def read_input(self) -> None:
        writer = self.outbound.writer()
        writer.push(self.input.read(writer.available_capacity()))
        if self.input.eof():
            writer.close()

    def wants_input(self) -> bool:
        writer = self.outbound.writer()
        return (
            not self.outbound.has_error()
            and not self.inbound.has_error()
            and writer.available_capacity() > 0
            and not writer.is_closed()
        )

    # rule 2: outbound stream -> socket
    def write_socket(self) -> None:
        reader = self.outbound.reader()
        if reader.bytes_buffered():
            reader.pop(self.sock.write(reader.peek()))
        if reader.is_finished():
            self.sock.shutdown(socket.SHUT_WR)
            self.outbound_shutdown = True
            sys.stderr.write(f"DEBUG: Outbound stream to {self.peer_name} finished.\n")

    def wants_socket_write(self) -> bool:
        reader = self.outbound.reader()
        return bool(reader.bytes_buffered()) or (reader.is_finished() and not self.outbound_shutdown)

    # rule 3: socket -> inbound stream
    def read_socket(self) -> None:
        writer = self.inbound.writer()
        writer.push(self.sock.read(writer.available_capacity()))
        if self.sock.eof():
            writer.close()

    def wants_socket_read(self) -> bool:
        writer = self.inbound.writer()
        return (
            not self.inbound.has_error()
            and not self.outbound.has_error()
            and writer.available_capacity() > 0
            and not writer.is_closed()
        )

    # rule 4: inbound stream -> stdout
    def write_output(self) -> None:
        reader = self.inbound.reader()
        if reader.bytes_buffered():
            reader.pop(self.output.write(reader.peek()))
        if reader.is_finished():
            self.output.close()
            self.inbound_shutdown = True
            ending = " uncleanly.\n" if self.inbound.has_error() else ".\n"
            sys.stderr.write(f"DEBUG: Inbound stream from {self.peer_name} finished{ending}")

    def wants_output(self) -> bool:
        reader = self.inbound.reader()
        return bool(reader.bytes_buffered()) or (reader.is_finished() and not self.inbound_shutdown)

    def run(self) -> None:
        self.sock.set_blocking(False)
        self.input.set_blocking(False)
        self.output.set_blocking(False)

        loop = EventLoop()
        loop.add_rule(
            "read from stdin into outbound byte stream",
            self.input,
            Direction.IN,
            self.read_input,
            self.wants_input,
            self.outbound.writer().close,
            lambda: self._fail_both("Outbound stream had error from source."),
        )
        loop.add_rule(
            "read from outbound byte stream into socket",
            self.sock,
            Direction.OUT,
            self.write_socket,
            self.wants_socket_write,
            self.outbound.writer().close,
            lambda: self._fail_both("Outbound stream had error from destination."),
        )
        loop.add_rule(
            "read from socket into inbound byte stream",
            self.sock,
            Direction.IN,
            self.read_socket,
            self.wants_socket_read,
            self.inbound.writer().close,
            lambda: self._fail_both("Inbound stream had error from source."),
        )
        loop.add_rule(
            "read from inbound byte stream into stdout",
            self.output,
            Direction.OUT,
            self.write_output,
            self.wants_output,
            self.inbound.writer().close,
            lambda: self._fail_both("Inbound stream had error from destination."),
        )

        while loop.wait_next_event(-1) is not Result.EXIT:
            pass


def bidirectional_stream_copy(
    sock: Socket,
    peer_name: str,
    input_fd: FileDescriptor | None = None,
    output_fd: FileDescriptor | None = None,
) -> None:
    """Copy ``input_fd`` (stdin) to ``sock`` and ``sock`` to ``output_fd`` (stdout) until both finish."""
    if input_fd is None:
        input_fd = FileDescriptor(0)
    if output_fd is None:
        output_fd = FileDescriptor(1)
    _StreamCopy(sock, peer_name, input_fd, output_fd).run()