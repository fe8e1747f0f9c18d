"""Network sockets built on reference-counted file descriptors."""

from __future__ import annotations

import errno
import socket
import struct
from collections.abc import Callable
from typing import TypeVar

from minnow.address import Address
from minnow.errors import UnixError
from minnow.file_descriptor import READ_BUFFER_SIZE, FileDescriptor

T = TypeVar("T")

_SOL_PACKET = getattr(socket, "SOL_PACKET", 263)
_PACKET_ADD_MEMBERSHIP = getattr(socket, "PACKET_ADD_MEMBERSHIP", 1)
_PACKET_MR_PROMISC = getattr(socket, "PACKET_MR_PROMISC", 1)
_MSG_TRUNC = getattr(socket, "MSG_TRUNC", 0)


class Socket(FileDescriptor):
    """Base class for network sockets; normally used through a subclass."""

    def __init__(self, domain: int, sock_type: int, protocol: int = 0) -> None:
        try:
            fd = socket.socket(domain, sock_type, protocol).detach()
        except OSError as exc:
            raise UnixError("socket", exc.errno or 0) from exc
        super().__init__(fd)

    @classmethod
    def _adopt(cls, fd: FileDescriptor, domain: int, sock_type: int, protocol: int = 0):
        """Take over ``fd``, checking that it is a socket of the expected kind."""
        handle = cls._from_wrapper(fd._internal)
        handle._verify(domain, sock_type, protocol)
        return handle

    def _socket_call(self, attempt: str, operation: Callable[[socket.socket], T]) -> T | int:
        """Run ``operation`` on a temporary socket object sharing this descriptor."""

        def run() -> T:
            sock = socket.socket(fileno=self.fd_num())
            try:
                return operation(sock)
            finally:
                sock.detach()

        return self._check_system_call(attempt, run)

    def _verify(self, domain: int, sock_type: int, protocol: int) -> None:
        def query(sock: socket.socket) -> tuple[int, int, int | None]:
            so_domain = getattr(socket, "SO_DOMAIN", None)
            so_protocol = getattr(socket, "SO_PROTOCOL", None)
            actual_domain = (
                sock.getsockopt(socket.SOL_SOCKET, so_domain) if so_domain is not None else int(sock.family)
            )
            actual_type = sock.getsockopt(socket.SOL_SOCKET, socket.SO_TYPE)
            actual_protocol = (
                sock.getsockopt(socket.SOL_SOCKET, so_protocol) if so_protocol is not None else None
            )
            return actual_domain, actual_type, actual_protocol

        actual_domain, actual_type, actual_protocol = self._socket_call("getsockopt", query)
        if actual_domain != domain:
            raise RuntimeError("socket domain mismatch")
        if actual_type != sock_type:
            raise RuntimeError("socket type mismatch")
        if actual_protocol is not None and actual_protocol != protocol:
            raise RuntimeError("socket protocol mismatch")

    def _getsockopt(self, level: int, option: int) -> int:
        return self._socket_call("getsockopt", lambda sock: sock.getsockopt(level, option))

    def _setsockopt(self, level: int, option: int, value: int | bytes) -> None:
        self._socket_call("setsockopt", lambda sock: sock.setsockopt(level, option, value))

    def _get_address(self, attempt: str, getter: Callable[[socket.socket], object]) -> Address:
        def fetch(sock: socket.socket) -> Address:
            return Address.from_sockaddr(sock.family, getter(sock))

        return self._socket_call(attempt, fetch)

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listen/accept."""
        self._socket_call("bind", lambda sock: sock.bind(address.sockaddr))

    def bind_to_device(self, device_name: str) -> None:
        """Restrict the socket to one network device."""
        option = getattr(socket, "SO_BINDTODEVICE", None)
        if option is None:
            raise UnixError("setsockopt", errno.ENOPROTOOPT)
        self._setsockopt(socket.SOL_SOCKET, option, device_name.encode())

    def connect(self, address: Address) -> None:
        """Connect to a peer address."""
        self._socket_call("connect", lambda sock: sock.connect(address.sockaddr))

    def shutdown(self, how: int) -> None:
        """Shut down reading, writing or both (SHUT_RD, SHUT_WR, SHUT_RDWR)."""
        self._socket_call("shutdown", lambda sock: sock.shutdown(how))
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise RuntimeError("Socket::shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._get_address("getsockname", lambda sock: sock.getsockname())

    def peer_address(self) -> Address:
        return self._get_address("getpeername", lambda sock: sock.getpeername())

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise any pending error recorded on the socket."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> tuple[Address, bytes] | None:
        """Receive one datagram and its sender's address.

        Returns None on a non-blocking socket with nothing waiting.
        """
        buffer = bytearray(READ_BUFFER_SIZE)

        def receive(sock: socket.socket) -> tuple[int, Address]:
            length, source = sock.recvfrom_into(buffer, len(buffer), _MSG_TRUNC)
            return length, Address.from_sockaddr(sock.family, source)

        result = self._socket_call("recvfrom", receive)
        if result == 0:
            self._register_read()
            return None
        length, source = result
        if length > len(buffer):
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return source, bytes(buffer[:length])

    def sendto(self, destination: Address, payload: bytes) -> None:
        """Send a datagram to ``destination``."""
        self._socket_call("sendto", lambda sock: sock.sendto(payload, destination.sockaddr))
        self._register_write()

    def send(self, payload: bytes) -> None:
        """Send a datagram to the connected peer."""
        self._socket_call("send", lambda sock: sock.send(payload))
        self._register_write()


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """An unbound, unconnected TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    def listen(self, backlog: int = 16) -> None:
        """Mark the socket as listening for incoming connections."""
        self._socket_call("listen", lambda sock: sock.listen(backlog))

    def accept(self) -> TCPSocket:
        """Accept a new connection, blocking until one arrives."""
        self._register_read()

        def take(sock: socket.socket) -> int:
            connection, _ = sock.accept()
            return connection.detach()

        fd = self._socket_call("accept", take)
        if fd == 0:
            raise UnixError("accept", errno.EAGAIN)
        return TCPSocket._adopt(FileDescriptor(fd), socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)


class PacketSocket(DatagramSocket):
    """A link-layer packet socket."""

    def __init__(self, sock_type: int, protocol: int) -> None:
        family = getattr(socket, "AF_PACKET", None)
        if family is None:
            raise UnixError("socket", errno.EAFNOSUPPORT)
        super().__init__(family, sock_type, protocol)

    def set_promiscuous(self) -> None:
        """Receive every packet seen by the bound interface."""
        interface_name = self.local_address().sockaddr[0]
        ifindex = socket.if_nametoindex(interface_name)
        request = struct.pack("iHH8s", ifindex, _PACKET_MR_PROMISC, 0, b"")
        self._setsockopt(_SOL_PACKET, _PACKET_ADD_MEMBERSHIP, request)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket wrapping an existing descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        self._internal = fd._internal
        self._verify(socket.AF_UNIX, socket.SOCK_STREAM, 0)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)