"""Tests for the TTL cache store and cache-key construction."""

from swapgate.services.cache_store import CacheStore, make_cache_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_get_before_ttl_returns_value():
    clock = FakeClock()
    cache = CacheStore(clock=clock)
    cache.set("k", {"price": 1}, ttl=30)
    clock.advance(29.9)
    assert cache.get("k") == {"price": 1}


def test_get_after_ttl_returns_none_and_evicts():
    clock = FakeClock()
    cache = CacheStore(clock=clock)
    cache.set("k", b"body", ttl=30)
    clock.advance(30)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_missing_key_is_absent():
    assert CacheStore().get("nope") is None


def test_default_ttl_used_when_none_given():
    clock = FakeClock()
    cache = CacheStore(default_ttl=5, clock=clock)
    cache.set("k", 1)
    clock.advance(4)
    assert cache.get("k") == 1
    clock.advance(2)
    assert cache.get("k") is None


def test_set_overwrites_and_restarts_ttl():
    clock = FakeClock()
    cache = CacheStore(clock=clock)
    cache.set("k", "old", ttl=10)
    clock.advance(8)
    cache.set("k", "new", ttl=10)
    clock.advance(8)
    assert cache.get("k") == "new"


def test_sweep_removes_only_expired_entries():
    clock = FakeClock()
    cache = CacheStore(clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2, ttl=60)
    clock.advance(10)
    assert cache.sweep() == 1
    assert len(cache) == 1
    assert cache.get("long") == 2


def test_reads_identical_with_or_without_sweep():
    clock_a, clock_b = FakeClock(), FakeClock()
    swept, unswept = CacheStore(clock=clock_a), CacheStore(clock=clock_b)
    for cache in (swept, unswept):
        cache.set("a", 1, ttl=5)
        cache.set("b", 2, ttl=50)
    clock_a.advance(10)
    clock_b.advance(10)
    swept.sweep()
    for key in ("a", "b", "c"):
        assert swept.get(key) == unswept.get(key)


def test_cache_key_sorts_query_parameters():
    a = make_cache_key("https://api.test", "/quote", [("src", "0x1"), ("amount", "5")])
    b = make_cache_key("https://api.test", "/quote", {"amount": "5", "src": "0x1"})
    assert a == b
    assert a == "https://api.test/quote?amount=5&src=0x1"


def test_cache_key_distinguishes_path_and_base():
    params = {"chain": "eth"}
    assert make_cache_key("https://a.test", "/x", params) != make_cache_key("https://b.test", "/x", params)
    assert make_cache_key("https://a.test", "/x", params) != make_cache_key("https://a.test", "/y", params)


def test_cache_key_expands_lists_and_drops_none():
    key = make_cache_key("https://a.test", "/p", {"ids": ["1", "2"], "skip": None})
    assert key == "https://a.test/p?ids=1&ids=2"
