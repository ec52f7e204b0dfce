"""Persistent memoization store for expensive index queries.

Entries are keyed by a stable hash of (operation name, schema generation,
call arguments), so bumping an operation's generation invalidates only its
own entries. The whole store is held under an exclusive lock for the run.
"""
from __future__ import annotations

import base64
import dbm
import fcntl
import hashlib
import json
import logging
import shelve
import threading
from typing import Any, Callable, Optional

from common.errors import CacheError
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


def cache_key(name: str, generation: int, args: tuple) -> str:
    """Return the content-addressed key for a call."""
    blob = json.dumps([name, generation, list(args)], sort_keys=True, default=str, separators=(",", ":"))
    digest = hashlib.sha1(blob.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii").rstrip("=")


class NullCache:
    """Pass-through cache used when persistence is disabled."""

    hits = 0
    misses = 0

    def cached(self, name: str, generation: int, fn: Callable[..., Any], *args: Any) -> Any:
        """Call fn(*args) without storing anything."""
        return fn(*args)

    def close(self) -> None:
        """Nothing to release."""

    def __enter__(self):
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class PersistentCache(NullCache):
    """shelve-backed cache holding an exclusive flock for its lifetime."""

    def __init__(self, path: str):
        self.path = path
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()
        self._lock_fh = None
        self._db: Optional[shelve.Shelf] = None
        try:
            self._lock_fh = open(f"{path}.lock", "a+", encoding="utf-8")  # pylint: disable=consider-using-with
            fcntl.flock(self._lock_fh, fcntl.LOCK_EX)
            self._db = shelve.open(path, flag="c")
        except (OSError, dbm.error[0]) as exc:
            self._release_lock()
            raise CacheError(f"Unable to use persistent cache {path}: {exc}") from exc
        logger.debug("Opened persistent cache %s", path)

    def cached(self, name: str, generation: int, fn: Callable[..., Any], *args: Any) -> Any:
        """Return the stored result for fn(*args), computing and storing it on a miss.

        Exceptions from fn propagate and nothing is stored for that call.
        """
        key = cache_key(name, generation, args)
        with self._lock:
            if self._db is None:
                raise CacheError(f"Cache {self.path} is closed")
            try:
                if key in self._db:
                    self.hits += 1
                    return self._db[key]
            except Exception as exc:  # pylint: disable=broad-exception-caught
                # unreadable entry (e.g. a class moved since it was stored): recompute
                logger.debug("Discarding unreadable cache entry for %s: %s", name, exc)
        result = fn(*args)
        with self._lock:
            self.misses += 1
            try:
                self._db[key] = result
            except OSError as exc:
                raise CacheError(f"Unable to write persistent cache {self.path}: {exc}") from exc
        if is_debug_enabled(logger):
            logger.debug(
                "Cache store",
                extra=extra_context(event="cache_store", component="cache", action=name, generation=generation),
            )
        return result

    def close(self) -> None:
        """Flush the store and release the lock."""
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
        self._release_lock()

    def _release_lock(self) -> None:
        if self._lock_fh is not None and not self._lock_fh.closed:
            fcntl.flock(self._lock_fh, fcntl.LOCK_UN)
            self._lock_fh.close()
