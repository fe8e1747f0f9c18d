"""Fetch a page over HTTP/1.1 and copy the raw response to standard output."""

from __future__ import annotations

import os
import sys
from typing import BinaryIO

from minnow.address import Address
from minnow.sockets import TCPSocket


def get_url(host: str, path: str, out: BinaryIO | None = None) -> None:
    """Send a GET request for ``path`` to ``host`` and write the whole response to ``out``."""
    if out is None:
        out = sys.stdout.buffer
    sys.stderr.write(f"Function called: get_URL({host}, {path})\n")
    with TCPSocket() as sock:
        sock.connect(Address(host, "http"))
        sock.write("GET " + path + " HTTP/1.1\r\n")
        sock.write("Host: " + host + "\r\n")
        sock.write("Connection: close\r\n")
        sock.write("\r\n")
        while not sock.eof():
            out.write(sock.read())
    out.flush()


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``webget HOST PATH``."""
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "webget"
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 2:
        sys.stderr.write(f"Usage: {prog} HOST PATH\n")
        sys.stderr.write(f"\tExample: {prog} example.com /index.html\n")
        return 1
    host, path = argv
    try:
        get_url(host, path)
    except Exception as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())