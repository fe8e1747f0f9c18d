import socket

import pytest

from minnow.address import Address
from minnow.errors import TaggedError


def test_numeric_ip_and_port():
    addr = Address("127.0.0.1", 80)
    assert addr.ip_port() == ("127.0.0.1", 80)
    assert addr.ip() == "127.0.0.1"
    assert addr.port() == 80
    assert addr.family == socket.AF_INET


def test_to_string_and_str():
    addr = Address("10.1.2.3", 5000)
    assert addr.to_string() == "10.1.2.3:5000"
    assert str(addr) == addr.to_string()


def test_default_port_is_zero():
    assert Address("10.0.0.1").port() == 0


def test_numeric_service_string():
    assert Address("127.0.0.1", "8080").port() == 8080


def test_invalid_numeric_host_raises_tagged_error():
    with pytest.raises(TaggedError) as info:
        Address("not-an-ip-address", 80)
    assert info.value.attempt == "getaddrinfo(not-an-ip-address, 80)"


def test_port_out_of_range():
    with pytest.raises(ValueError):
        Address("127.0.0.1", 70000)


def test_ipv4_numeric_round_trip():
    for value in (0, 1, 0x7F000001, 0xFFFFFFFF, 123456789):
        addr = Address.from_ipv4_numeric(value)
        assert addr.ipv4_numeric() == value
        assert addr.port() == 0


def test_from_ipv4_numeric_pinned():
    assert Address.from_ipv4_numeric(0x7F000001).ip() == "127.0.0.1"


def test_from_ipv4_numeric_matches_parsed():
    addr = Address("192.168.0.1", 0)
    assert Address.from_ipv4_numeric(addr.ipv4_numeric()) == addr


def test_from_ipv4_numeric_out_of_range():
    with pytest.raises(ValueError):
        Address.from_ipv4_numeric(1 << 32)
    with pytest.raises(ValueError):
        Address.from_ipv4_numeric(-1)


def test_equality_and_hash():
    a = Address("127.0.0.1", 80)
    b = Address("127.0.0.1", 80)
    c = Address("127.0.0.1", 81)
    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert len({a, b, c}) == 2


def test_equality_with_other_type():
    assert (Address("127.0.0.1", 80) == "127.0.0.1:80") is False


def test_non_internet_address():
    addr = Address.from_sockaddr(socket.AF_UNIX, "/tmp/minnow-test.sock")
    assert addr.to_string() == "(non-Internet address)"
    with pytest.raises(RuntimeError):
        addr.ip_port()
    with pytest.raises(RuntimeError):
        addr.ipv4_numeric()


def test_ipv6_address():
    addr = Address.from_sockaddr(socket.AF_INET6, ("::1", 443, 0, 0))
    assert addr.ip_port() == ("::1", 443)
    assert addr.to_string() == "::1:443"
    with pytest.raises(RuntimeError):
        addr.ipv4_numeric()


def test_from_sockaddr_round_trip():
    original = Address("172.16.5.4", 9999)
    rebuilt = Address.from_sockaddr(original.family, original.sockaddr)
    assert rebuilt == original
    assert rebuilt.ip_port() == ("172.16.5.4", 9999)