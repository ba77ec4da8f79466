"""Unit tests for the in-memory TTL cache."""

import threading

import pytest

from gatekeeper.adapters.cache import InMemoryTTLCache


def test_set_and_get_updates_hit_miss_counters() -> None:
    cache = InMemoryTTLCache()

    assert cache.get("missing") is None

    cache.set("key", b"value", 10)

    assert cache.get("key") == b"value"

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_entry_readable_until_ttl_elapses(clock) -> None:
    cache = InMemoryTTLCache(clock=clock)
    cache.set("key", b"v", 5)

    clock.advance(5)
    assert cache.get("key") == b"v"

    clock.advance(1)
    assert cache.get("key") is None
    assert cache.stats()["evictions"] == 1


def test_entry_without_ttl_never_expires(clock) -> None:
    cache = InMemoryTTLCache(clock=clock)
    cache.set("flag", b"1", None)

    clock.advance(10**9)

    assert cache.get("flag") == b"1"


def test_overwrite_refreshes_ttl(clock) -> None:
    cache = InMemoryTTLCache(clock=clock)
    cache.set("key", b"old", 5)
    clock.advance(4)
    cache.set("key", b"new", 5)
    clock.advance(4)

    assert cache.get("key") == b"new"


def test_lru_eviction_removes_least_recently_used() -> None:
    cache = InMemoryTTLCache(max_entries=2)
    cache.set("a", b"1", 100)
    cache.set("b", b"2", 100)

    # Access "a" so that "b" becomes least recently used
    assert cache.get("a") == b"1"

    cache.set("c", b"3", 100)

    assert cache.get("a") == b"1"
    assert cache.get("c") == b"3"
    assert cache.get("b") is None


def test_set_purges_expired_entries(clock) -> None:
    cache = InMemoryTTLCache(clock=clock)
    cache.set("short", b"1", 1)
    clock.advance(2)

    cache.set("other", b"2", 10)

    assert cache.stats()["entries"] == 1


def test_clear_resets_state() -> None:
    cache = InMemoryTTLCache()
    cache.set("a", b"1", 10)
    cache.set("b", b"2", 10)
    cache.get("a")

    cache.clear()

    assert cache.stats() == {
        "max_entries": None,
        "entries": 0,
        "hits": 0,
        "misses": 0,
        "evictions": 0,
    }


def test_invalid_max_entries() -> None:
    with pytest.raises(ValueError):
        InMemoryTTLCache(max_entries=0)


def test_thread_safety_under_concurrent_sets() -> None:
    cache = InMemoryTTLCache()
    total_keys = 50

    def _writer(idx: int) -> None:
        cache.set(f"k-{idx}", str(idx).encode(), 30)

    threads = [threading.Thread(target=_writer, args=(i,)) for i in range(total_keys)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.stats()["entries"] == total_keys
    assert cache.get("k-0") == b"0"
    assert cache.get("k-49") == b"49"
