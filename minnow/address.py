"""Socket addresses and name resolution."""

from __future__ import annotations

import ipaddress
import socket
from typing import Any

from minnow.errors import TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


class Address:
    """A resolved socket address: an address family and the matching sockaddr value."""

    __slots__ = ("_family", "_sockaddr")

    def __init__(self, host: str, service: str | int = 0) -> None:
        """Resolve ``host`` and ``service``.

        An integer ``service`` is a port and ``host`` must then be a numeric
        IPv4 address; a string ``service`` may be a service name or number and
        ``host`` may be a host name.
        """
        if isinstance(service, int):
            if not 0 <= service <= 0xFFFF:
                raise ValueError(f"port out of range: {service}")
            service_text = str(service)
            flags = socket.AI_NUMERICHOST | socket.AI_NUMERICSERV
        else:
            service_text = service
            flags = getattr(socket, "AI_ALL", 0)

        try:
            results = socket.getaddrinfo(host, service_text, socket.AF_INET, 0, 0, flags)
        except socket.gaierror as exc:
            raise TaggedError(
                f"getaddrinfo({host}, {service_text})", exc.errno or 0, exc.strerror or str(exc)
            ) from exc
        if not results:
            raise RuntimeError("getaddrinfo returned successfully but with no results")

        family, _, _, _, sockaddr = results[0]
        self._family = int(family)
        self._sockaddr = sockaddr

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> Address:
        """Wrap an already-resolved sockaddr value of the given family."""
        address = cls.__new__(cls)
        address._family = int(family)
        address._sockaddr = tuple(sockaddr) if isinstance(sockaddr, list) else sockaddr
        return address

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """Build an IPv4 address (port 0) from its 32-bit host-order value."""
        if not 0 <= ip_address <= 0xFFFFFFFF:
            raise ValueError(f"IPv4 address out of range: {ip_address}")
        return cls.from_sockaddr(socket.AF_INET, (str(ipaddress.IPv4Address(ip_address)), 0))

    @property
    def family(self) -> int:
        return self._family

    @property
    def sockaddr(self) -> Any:
        return self._sockaddr

    def ip_port(self) -> tuple[str, int]:
        """Return the numeric IP string and port."""
        if self._family not in _INTERNET_FAMILIES:
            raise RuntimeError("Address::ip_port() called on non-Internet address")
        try:
            host, port = socket.getnameinfo(
                self._sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
            )
        except socket.gaierror as exc:
            raise TaggedError("getnameinfo", exc.errno or 0, exc.strerror or str(exc)) from exc
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """Return the IPv4 address as a 32-bit integer in host order."""
        if self._family != socket.AF_INET:
            raise RuntimeError("ipv4_numeric called on non-IPV4 address")
        return int(ipaddress.IPv4Address(self._sockaddr[0]))

    def to_string(self) -> str:
        """Human-readable form, e.g. ``8.8.8.8:53``."""
        if self._family in _INTERNET_FAMILIES:
            host, port = self.ip_port()
            return f"{host}:{port}"
        return "(non-Internet address)"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Address.from_sockaddr({self._family!r}, {self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))