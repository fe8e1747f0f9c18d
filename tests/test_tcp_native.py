import socket

import pytest

from minnow.tcp_native import main, show_usage


def test_show_usage_mentions_listen_mode(capsys):
    show_usage("tcp_native")
    err = capsys.readouterr().err
    assert err.startswith("Usage: tcp_native [-l] <host> <port>\n")
    assert "-l specifies listen mode" in err


@pytest.mark.parametrize("argv", [[], ["localhost"], ["-l", "127.0.0.1"]])
def test_too_few_arguments_prints_usage(argv, capsys):
    assert main(argv) == 1
    assert "Usage:" in capsys.readouterr().err


def test_connection_refused_reports_exception(capsys):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as unused:
        unused.bind(("127.0.0.1", 0))
        port = unused.getsockname()[1]
        assert main(["127.0.0.1", str(port)]) == 1
    err = capsys.readouterr().err
    assert "DEBUG: Connecting to 127.0.0.1:" in err
    assert "Exception: connect" in err


def test_unresolvable_service_reports_exception(capsys):
    assert main(["127.0.0.1", "no-such-service-name"]) == 1
    assert "Exception: getaddrinfo(127.0.0.1, no-such-service-name)" in capsys.readouterr().err