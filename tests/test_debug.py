import pytest

from minnow.debug import debug, debug_str, reset_debug_handler, set_debug_handler


@pytest.fixture
def captured():
    messages = []
    set_debug_handler(messages.append)
    yield messages
    reset_debug_handler()


def test_debug_str_goes_to_handler(captured):
    debug_str("segment received")
    assert captured == ["segment received"]


def test_debug_formats_arguments(captured):
    debug("a {} b {name}", 1, name="x")
    assert captured == ["a 1 b x"]


def test_messages_kept_in_order(captured):
    for word in ("one", "two", "three"):
        debug_str(word)
    assert captured == ["one", "two", "three"]


def test_reset_restores_stderr(capsys):
    messages = []
    set_debug_handler(messages.append)
    reset_debug_handler()
    debug_str("hello")
    assert messages == []
    assert capsys.readouterr().err == "DEBUG: hello\n"