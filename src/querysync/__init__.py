"""
QuerySync - Event-driven query cache consistency.

Keeps a local query cache synchronized with server-owned entities
(projects, tasks, chats, messages, ...) across every client observing the
same backend. Each data-changed notification is mapped to cache actions:
- Invalidate every query namespace the entity feeds
- Optimistically write the new record into its point slot
- Remove deleted records from point lookups

Built on the Foundation core (EventBus, ConfigManager, BaseSystem).
"""

__version__ = "0.1.0"

from .errors import QuerySyncError, InvalidEventError, CacheError, KeyMapError
from .models import DataAction, DataChangedEvent, QueryKey
from .keys import DEFAULT_ENTITY_QUERY_KEYS, EntityQueryKeyMap, resolve_query_keys
from .cache import QueryCache, QueryCacheProtocol, QueryState
from .executor import CacheActionExecutor
from .global_sync import DataSyncSession, SyncOptions
from .entity_sync import EntitySyncSession
from .service import DataSyncService

__all__ = [
    # Errors
    "QuerySyncError",
    "InvalidEventError",
    "CacheError",
    "KeyMapError",

    # Models
    "DataAction",
    "DataChangedEvent",
    "QueryKey",

    # Resolution
    "DEFAULT_ENTITY_QUERY_KEYS",
    "EntityQueryKeyMap",
    "resolve_query_keys",

    # Cache
    "QueryCache",
    "QueryCacheProtocol",
    "QueryState",
    "CacheActionExecutor",

    # Controllers
    "DataSyncSession",
    "SyncOptions",
    "EntitySyncSession",
    "DataSyncService",
]
