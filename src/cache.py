"""
In-memory response cache with single-flight fetches.
"""
import logging
import threading
import time
from concurrent.futures import Future

logger = logging.getLogger(__name__)


class ResponseCache:
    """
    TTL key/value store shared by request handlers.

    ``get_or_fetch`` runs at most one producer per key at a time; concurrent
    callers for the same key wait on the in-flight result instead of fetching
    again. The in-flight entry is dropped when the producer finishes or fails.
    """

    def __init__(self, default_ttl=300, enabled=True, clock=time.monotonic):
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._clock = clock
        self._entries = {}
        self._in_flight = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._get_unlocked(key)

    def _get_unlocked(self, key):
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key, value, ttl=None):
        if not self.enabled:
            return
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            self._prune_unlocked(now)
            self._entries[key] = (value, now + ttl)

    def _prune_unlocked(self, now):
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]

    def get_or_fetch(self, key, producer, ttl=None):
        with self._lock:
            cached = self._get_unlocked(key) if self.enabled else None
            if cached is not None:
                return cached
            future = self._in_flight.get(key)
            is_owner = future is None
            if is_owner:
                future = Future()
                self._in_flight[key] = future

        if not is_owner:
            logger.debug(f"Waiting on in-flight fetch for {key}")
            return future.result()

        try:
            value = producer()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            self.set(key, value, ttl)
            future.set_result(value)
            return value
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    def clear(self):
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} cached responses")
        return count

    def __len__(self):
        with self._lock:
            return len(self._entries)
