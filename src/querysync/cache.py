"""
QuerySync - Query cache.

QueryCacheProtocol is the contract the sync layer consumes. QueryCache is an
in-memory, key-addressed cache implementing it: hierarchical keys,
prefix invalidation, point writes and removals, and refetch-on-next-read
for invalidated entries.
"""
import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from loguru import logger

from src.core.events import Signal
from .errors import CacheError
from .models import QueryKey

KeyLike = Union[str, Sequence[Any]]


@runtime_checkable
class QueryCacheProtocol(Protocol):
    """
    Cache operations required by the sync layer.

    Implementations must treat operations on unknown keys as no-ops and
    must treat ("tasks",) as a prefix of ("tasks", {"projectId": "p1"}).
    """

    def invalidate_queries(self, prefix: KeyLike) -> Any:
        """Mark every entry under prefix as stale."""
        ...

    def set_query_data(self, key: KeyLike, value: Any) -> Any:
        """Write value into the slot addressed by key."""
        ...

    def remove_queries(self, prefix: KeyLike) -> Any:
        """Drop every entry under prefix."""
        ...


@dataclass
class QueryState:
    key: QueryKey
    data: Any = None
    is_invalidated: bool = False
    updated_at: float = field(default_factory=time.time)
    data_update_count: int = 0


def normalize_key(key: KeyLike) -> QueryKey:
    if isinstance(key, str):
        return (key,)
    return tuple(key)


def hash_key(key: QueryKey) -> str:
    """Stable identity for a key; mapping segments hash independently of item order."""
    return json.dumps(list(key), sort_keys=True, default=str, separators=(",", ":"))


def _segment_matches(prefix_seg: Any, key_seg: Any) -> bool:
    if isinstance(prefix_seg, Mapping):
        if not isinstance(key_seg, Mapping):
            return False
        return all(k in key_seg and key_seg[k] == v for k, v in prefix_seg.items())
    return prefix_seg == key_seg


def key_matches(prefix: QueryKey, key: QueryKey, exact: bool = False) -> bool:
    """
    Check whether key lies under prefix.

    String segments match by equality; a mapping segment in the prefix
    matches a mapping segment in the key when its items are a subset.
    """
    if exact:
        return hash_key(prefix) == hash_key(key)
    if len(prefix) > len(key):
        return False
    return all(_segment_matches(p, k) for p, k in zip(prefix, key))


class QueryCache:
    """
    In-memory reactive query cache.

    Usage:
        cache = QueryCache()
        cache.set_query_data(("task", "t1"), {"title": "X"})
        cache.invalidate_queries(("tasks",))
        tasks = cache.fetch_query(("tasks",), api.list_tasks)

    Signals:
        on_change(kind, key): kind is "updated", "invalidated" or "removed"
    """

    def __init__(self):
        self._entries: Dict[str, QueryState] = {}
        self._lock = threading.RLock()
        self._closed = False
        self.on_change = Signal("QueryCacheChanged")

    def _ensure_open(self) -> None:
        if self._closed:
            raise CacheError("Query cache is closed")

    def _matching(self, prefix: QueryKey, exact: bool) -> List[Tuple[str, QueryState]]:
        return [(h, s) for h, s in self._entries.items() if key_matches(prefix, s.key, exact)]

    # === Contract ===

    def invalidate_queries(self, prefix: KeyLike, exact: bool = False) -> int:
        """
        Mark matching entries stale; they refetch on next fetch_query().

        Returns:
            Number of entries invalidated
        """
        prefix = normalize_key(prefix)
        with self._lock:
            self._ensure_open()
            touched = []
            for _, state in self._matching(prefix, exact):
                state.is_invalidated = True
                touched.append(state.key)

        for key in touched:
            self.on_change.emit("invalidated", key)
        if touched:
            logger.debug(f"Invalidated {len(touched)} queries under {list(prefix)}")
        return len(touched)

    def set_query_data(self, key: KeyLike, value: Any) -> None:
        key = normalize_key(key)
        with self._lock:
            self._ensure_open()
            h = hash_key(key)
            state = self._entries.get(h)
            if state is None:
                state = QueryState(key=key)
                self._entries[h] = state
            state.data = value
            state.is_invalidated = False
            state.updated_at = time.time()
            state.data_update_count += 1

        self.on_change.emit("updated", key)

    def remove_queries(self, prefix: KeyLike, exact: bool = False) -> int:
        """
        Drop matching entries entirely.

        Returns:
            Number of entries removed
        """
        prefix = normalize_key(prefix)
        with self._lock:
            self._ensure_open()
            removed = []
            for h, state in self._matching(prefix, exact):
                del self._entries[h]
                removed.append(state.key)

        for key in removed:
            self.on_change.emit("removed", key)
        if removed:
            logger.debug(f"Removed {len(removed)} queries under {list(prefix)}")
        return len(removed)

    # === Reads ===

    def get_query_data(self, key: KeyLike, default: Any = None) -> Any:
        with self._lock:
            self._ensure_open()
            state = self._entries.get(hash_key(normalize_key(key)))
            return default if state is None else state.data

    def get_query_state(self, key: KeyLike) -> Optional[QueryState]:
        with self._lock:
            self._ensure_open()
            return self._entries.get(hash_key(normalize_key(key)))

    def is_stale(self, key: KeyLike) -> bool:
        """True when the entry is missing or invalidated."""
        state = self.get_query_state(key)
        return state is None or state.is_invalidated

    def find_all(self, prefix: KeyLike = ()) -> List[QueryState]:
        prefix = normalize_key(prefix)
        with self._lock:
            self._ensure_open()
            return [s for _, s in self._matching(prefix, exact=False)]

    def fetch_query(self, key: KeyLike, fetcher: Callable[[], Any]) -> Any:
        """
        Return cached data when fresh, otherwise call fetcher and store its result.

        Errors raised by fetcher propagate and leave the entry untouched.
        """
        key = normalize_key(key)
        state = self.get_query_state(key)
        if state is not None and not state.is_invalidated:
            return state.data

        logger.debug(f"Fetching query {list(key)}")
        value = fetcher()
        self.set_query_data(key, value)
        return value

    def __len__(self) -> int:
        return len(self._entries)

    # === Lifecycle ===

    def clear(self) -> None:
        with self._lock:
            self._ensure_open()
            self._entries.clear()

    def close(self) -> None:
        """Drop all entries; every later operation raises CacheError."""
        with self._lock:
            self._entries.clear()
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
