"""Connect to, or accept one connection from, a TCP peer and copy stdin/stdout across it."""

from __future__ import annotations

import os
import sys

from minnow.address import Address
from minnow.sockets import TCPSocket
from minnow.stream_copy import bidirectional_stream_copy


def show_usage(argv0: str) -> None:
    """Print the command-line usage to standard error."""
    sys.stderr.write(
        f"Usage: {argv0} [-l] <host> <port>\n\n"
        "  -l specifies listen mode; <host>:<port> is the listening address.\n"
    )


def _accept_one(host: str, port: str) -> TCPSocket:
    with TCPSocket() as listening:
        listening.set_reuseaddr()
        listening.bind(Address(host, port))
        listening.listen()
        sys.stderr.write("DEBUG: Listening for incoming connection...\n")
        connected = listening.accept()
    sys.stderr.write(f"DEBUG: New connection from {connected.peer_address()}.\n")
    return connected


def _connect(host: str, port: str) -> TCPSocket:
    connecting = TCPSocket()
    peer = Address(host, port)
    sys.stderr.write(f"DEBUG: Connecting to {peer}... ")
    connecting.connect(peer)
    sys.stderr.write(f"DEBUG: Successfully connected to {connecting.peer_address()}.\n")
    return connecting


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``tcp_native [-l] HOST PORT``."""
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "tcp_native"
    if argv is None:
        argv = sys.argv[1:]

    server_mode = bool(argv) and argv[0] == "-l"
    if len(argv) < 2 or (server_mode and len(argv) < 3):
        show_usage(prog)
        return 1

    try:
        sock = _accept_one(argv[1], argv[2]) if server_mode else _connect(argv[0], argv[1])
        bidirectional_stream_copy(sock, sock.peer_address().to_string())
    except Exception as exc:
        sys.stderr.write(f"Exception: {exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())