from datetime import timedelta

import pytest

from airplaytv.cache import TTLCache, get_set_cache, shared_cache, with_cache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def clean_shared():
    shared_cache().clear()
    yield
    shared_cache().clear()


def test_get_missing_returns_default(clock):
    cache = TTLCache(clock)
    assert cache.get("x", "dflt") == "dflt"


def test_set_and_get(clock):
    cache = TTLCache(clock)
    cache.set("k", [1, 2])
    assert cache.get("k") == [1, 2]
    assert "k" in cache


def test_expiry(clock):
    cache = TTLCache(clock)
    cache.set("k", "v", ttl=5)
    clock.now = 4.9
    assert cache.get("k") == "v"
    clock.now = 5.0
    assert cache.get("k") is None
    assert len(cache) == 0


def test_timedelta_ttl(clock):
    cache = TTLCache(clock)
    cache.set("k", "v", ttl=timedelta(hours=2))
    clock.now = 7199
    assert cache.get("k") == "v"
    clock.now = 7200
    assert "k" not in cache


def test_no_ttl_never_expires(clock):
    cache = TTLCache(clock)
    cache.set("k", "v")
    clock.now = 10**9
    assert cache.get("k") == "v"


def test_delete_and_clear(clock):
    cache = TTLCache(clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.clear()
    assert len(cache) == 0


def test_with_cache_computes_once():
    calls = []

    def compute():
        calls.append(1)
        return "result"

    assert with_cache("key", 60, compute) == "result"
    assert with_cache("key", 60, compute) == "result"
    assert len(calls) == 1


def test_with_cache_recomputes_none():
    calls = []

    def compute():
        calls.append(1)
        return None

    first = with_cache("none", 60, compute)
    second = with_cache("none", 60, compute)
    assert first is None
    assert second is None
    assert len(calls) == 2


def test_get_set_cache():
    assert get_set_cache("throttle", 5) is False
    assert get_set_cache("throttle", 5) is True