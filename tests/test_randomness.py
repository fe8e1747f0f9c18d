import random

from minnow.randomness import get_random_engine


def test_engine_is_a_generator():
    engine = get_random_engine()
    assert isinstance(engine, random.Random)
    draws = [engine.randrange(10, 200) for _ in range(500)]
    assert all(10 <= d < 200 for d in draws)


def test_engines_are_independently_seeded():
    first = get_random_engine()
    second = get_random_engine()
    a = [first.getrandbits(64) for _ in range(16)]
    b = [second.getrandbits(64) for _ in range(16)]
    assert len(a) == len(b) == 16
    assert a != b


def test_engine_state_round_trip():
    engine = get_random_engine()
    state = engine.getstate()
    before = [engine.random() for _ in range(8)]
    engine.setstate(state)
    assert [engine.random() for _ in range(8)] == before