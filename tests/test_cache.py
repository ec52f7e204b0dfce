"""Tests for the persistent memoization store."""

import fcntl

import pytest

from common.cache import NullCache, PersistentCache, cache_key
from common.errors import CacheError, RemoteQueryFailed


def test_cache_key_is_stable_and_generation_sensitive():
    assert cache_key("f", 1, ("a", 2)) == cache_key("f", 1, ("a", 2))
    assert cache_key("f", 1, ("a", 2)) != cache_key("f", 2, ("a", 2))
    assert cache_key("f", 1, ("a", 2)) != cache_key("g", 1, ("a", 2))
    assert cache_key("f", 1, ("a", 2)) != cache_key("f", 1, ("a", 3))


def test_null_cache_always_calls():
    calls = []
    cache = NullCache()
    for _ in range(2):
        cache.cached("f", 1, lambda x: calls.append(x) or x * 2, 3)
    assert calls == [3, 3]


class TestPersistentCache:
    """shelve-backed store behaviour."""

    def test_hit_skips_recompute(self, tmp_path):
        calls = []

        def fn(x):
            calls.append(x)
            return {"value": x}

        with PersistentCache(str(tmp_path / "cache.db")) as cache:
            assert cache.cached("f", 1, fn, 5) == {"value": 5}
            assert cache.cached("f", 1, fn, 5) == {"value": 5}
            assert cache.hits == 1
            assert cache.misses == 1
        assert calls == [5]

    def test_persists_across_runs(self, tmp_path):
        path = str(tmp_path / "cache.db")
        with PersistentCache(path) as cache:
            cache.cached("f", 1, lambda x: x + 1, 1)
        with PersistentCache(path) as cache:
            assert cache.cached("f", 1, lambda x: pytest.fail("recomputed"), 1) == 2

    def test_generation_bump_invalidates(self, tmp_path):
        path = str(tmp_path / "cache.db")
        with PersistentCache(path) as cache:
            cache.cached("f", 1, lambda x: "old", 1)
        with PersistentCache(path) as cache:
            assert cache.cached("f", 2, lambda x: "new", 1) == "new"
            assert cache.cached("f", 1, lambda x: "unused", 1) == "old"

    def test_failures_are_not_stored(self, tmp_path):
        def failing(_):
            raise RemoteQueryFailed("down")

        with PersistentCache(str(tmp_path / "cache.db")) as cache:
            with pytest.raises(RemoteQueryFailed):
                cache.cached("f", 1, failing, 1)
            assert cache.cached("f", 1, lambda x: "ok", 1) == "ok"

    def test_unreadable_store_raises_and_releases_lock(self, tmp_path):
        path = tmp_path / "cache.db"
        path.write_bytes(b"not a dbm file " * 50)
        with pytest.raises(CacheError):
            PersistentCache(str(path))
        with open(f"{path}.lock", "a+", encoding="utf-8") as fh:
            fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
            fcntl.flock(fh, fcntl.LOCK_UN)
