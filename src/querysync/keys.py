"""
QuerySync - Entity to cache key resolution.

Decouples the backend's entity vocabulary from the cache's key taxonomy:
the backend emits "worktree", but the worktrees, worktree and git
namespaces all have to be invalidated.
"""
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import KeyMapError

DEFAULT_ENTITY_QUERY_KEYS: Dict[str, Tuple[str, ...]] = {
    "project": ("projects", "project"),
    "task": ("tasks", "task"),
    "chat": ("chats", "chat"),
    "message": ("messages", "message"),
    "executorProfile": ("executorProfiles", "executorProfile"),
    "setting": ("settings", "setting"),
    "process": ("processes", "process"),
    "worktree": ("worktrees", "worktree", "git"),
}


def _normalize_keys(entity: str, keys: Iterable[str]) -> Tuple[str, ...]:
    if not entity or not isinstance(entity, str):
        raise KeyMapError(f"Entity name must be a non-empty string, got {entity!r}")
    if isinstance(keys, str):
        raise KeyMapError(f"Query keys for '{entity}' must be a list of strings, not a string")

    seen: List[str] = []
    for key in keys:
        if not key or not isinstance(key, str):
            raise KeyMapError(f"Query key for '{entity}' must be a non-empty string, got {key!r}")
        if key not in seen:
            seen.append(key)
    if not seen:
        raise KeyMapError(f"Query keys for '{entity}' must not be empty")
    return tuple(seen)


class EntityQueryKeyMap:
    """
    Entity type -> ordered cache key prefixes.

    Entities without an entry resolve to themselves, so resolve() never
    returns an empty tuple.

    Usage:
        key_map = EntityQueryKeyMap({"artifact": ["artifacts", "artifact"]})
        key_map.resolve("worktree")   # ("worktrees", "worktree", "git")
        key_map.resolve("artifact")   # ("artifacts", "artifact")
        key_map.resolve("newThing")   # ("newThing",)
    """

    def __init__(self, mapping: Optional[Mapping[str, Iterable[str]]] = None, include_defaults: bool = True):
        self._map: Dict[str, Tuple[str, ...]] = {}
        if include_defaults:
            self._map.update(DEFAULT_ENTITY_QUERY_KEYS)
        for entity, keys in (mapping or {}).items():
            self.register(entity, keys)

    def register(self, entity: str, keys: Iterable[str]) -> None:
        """
        Add or replace the key prefixes for an entity type.

        Raises:
            KeyMapError: If the entity name or any key is empty
        """
        self._map[entity] = _normalize_keys(entity, keys)

    def resolve(self, entity: str) -> Tuple[str, ...]:
        return self._map.get(entity, (entity,))

    def as_dict(self) -> Dict[str, Tuple[str, ...]]:
        return dict(self._map)

    def __contains__(self, entity: object) -> bool:
        return entity in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __repr__(self) -> str:
        return f"<EntityQueryKeyMap entities={sorted(self._map)}>"


_default_map = EntityQueryKeyMap()


def resolve_query_keys(entity: str) -> Tuple[str, ...]:
    """Resolve against the built-in table."""
    return _default_map.resolve(entity)
