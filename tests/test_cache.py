import pytest

from hn_best_stories.cache import RANKED_IDS_KEY, MemoryCache, item_cache_key


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entry_is_served_until_ttl_then_evicted() -> None:
    clock = _FakeClock()
    cache = MemoryCache(clock=clock)
    cache.set(RANKED_IDS_KEY, (1, 2, 3), ttl_sec=30)

    clock.now += 29.9
    assert cache.get(RANKED_IDS_KEY) == (1, 2, 3)

    clock.now += 0.1
    assert cache.get(RANKED_IDS_KEY) is None
    assert len(cache) == 0


def test_set_overwrites_and_resets_age() -> None:
    clock = _FakeClock()
    cache = MemoryCache(clock=clock)
    cache.set("item:1", "old", ttl_sec=60)
    clock.now += 50
    cache.set("item:1", "new", ttl_sec=60)
    clock.now += 50

    assert cache.get("item:1") == "new"


def test_set_rejects_non_positive_ttl() -> None:
    with pytest.raises(ValueError):
        MemoryCache().set("k", "v", ttl_sec=0)


def test_item_cache_key_format() -> None:
    assert item_cache_key(42) == "item:42"
    assert RANKED_IDS_KEY == "ranked-ids"


def test_set_sweeps_expired_entries_past_threshold() -> None:
    clock = _FakeClock()
    cache = MemoryCache(clock=clock, sweep_threshold=3)
    for item_id in range(3):
        cache.set(item_cache_key(item_id), item_id, ttl_sec=60)

    clock.now += 60
    cache.set(item_cache_key(100), 100, ttl_sec=60)

    assert len(cache) == 1
    assert cache.get(item_cache_key(100)) == 100


def test_sweep_keeps_live_entries() -> None:
    clock = _FakeClock()
    cache = MemoryCache(clock=clock, sweep_threshold=2)
    for item_id in range(5):
        cache.set(item_cache_key(item_id), item_id, ttl_sec=60)

    assert len(cache) == 5
    assert all(cache.get(item_cache_key(item_id)) == item_id for item_id in range(5))
