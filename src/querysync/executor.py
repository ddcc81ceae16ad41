"""
QuerySync - Cache Action Executor

Turns one DataChangedEvent plus its resolved key prefixes into cache
operations: prefix invalidation, optimistic point write, point removal.
"""
import threading
from typing import Iterable

from loguru import logger

from .cache import QueryCacheProtocol
from .models import DataChangedEvent


class CacheActionExecutor:
    """
    Applies data-changed events to a query cache.

    For every event, in order:
    1. Invalidate every resolved key prefix (all actions, deletions included)
    2. Optimistic write of event.data to (entity, id) when enabled,
       the action is not a deletion and data is present
    3. Remove (entity, id) when the action is a deletion

    The three steps run as one critical section per event. Cache errors
    propagate to the caller unchanged.
    """

    def __init__(self, cache: QueryCacheProtocol):
        self._cache = cache
        self._lock = threading.RLock()

    @property
    def cache(self) -> QueryCacheProtocol:
        return self._cache

    def invalidate(self, keys: Iterable[str]) -> None:
        """Invalidate each key prefix once."""
        with self._lock:
            for key in keys:
                logger.debug(f"Invalidating queries: [{key}]")
                self._cache.invalidate_queries((key,))

    def apply(self, event: DataChangedEvent, keys: Iterable[str], optimistic_update: bool = True) -> None:
        """
        Apply one event.

        Args:
            event: Decoded change notification
            keys: Resolved key prefixes for event.entity
            optimistic_update: Write event.data into (entity, id) for creates/updates
        """
        with self._lock:
            self.invalidate(keys)

            if optimistic_update and not event.is_deletion and event.has_data:
                self._cache.set_query_data(event.point_key, event.data)
                logger.debug(f"Optimistically updated cache: {event.entity}/{event.id}")

            if event.is_deletion:
                self._cache.remove_queries(event.point_key)
                logger.debug(f"Removed from cache: {event.entity}/{event.id}")
