"""
QuerySync - DataSyncService

System wiring the event bus, query cache and key map together and exposing
the start/stop API for application-wide and per-entity sync.
"""
from dataclasses import replace
from typing import Any, Callable, List, Optional

from loguru import logger

from src.core.base_system import BaseSystem
from src.core.events import EventBus
from .cache import QueryCache, QueryCacheProtocol
from .entity_sync import EntitySyncSession
from .executor import CacheActionExecutor
from .global_sync import DataSyncSession, SyncOptions
from .keys import EntityQueryKeyMap
from .models import DataChangedEvent


class DataSyncService(BaseSystem):
    """
    Keeps the local query cache in step with backend data-changed events.

    Collaborators are taken from the locator: the EventBus (required) and a
    QueryCache if one is registered, otherwise the service owns a private one.

    Usage:
        sl.register_system(EventBus)
        sl.register_system(QueryCache, QueryCache())
        sync = sl.register_system(DataSyncService)
        await sl.start_all()

        sync.start_global_sync(SyncOptions(on_data_change=notify))
        handle = sync.start_entity_sync("task", refresh_task_panel)
        ...
        sync.stop_entity_sync(handle)
        sync.stop_global_sync()
    """

    def __init__(self, locator, config):
        super().__init__(locator, config)
        self._bus: Optional[EventBus] = None
        self._cache: Optional[QueryCacheProtocol] = None
        self._executor: Optional[CacheActionExecutor] = None
        self._key_map = EntityQueryKeyMap()
        self._global: Optional[DataSyncSession] = None
        self._global_options = SyncOptions()
        self._entity_sessions: List[EntitySyncSession] = []
        self._disconnect_config: Optional[Callable[[], None]] = None

    async def initialize(self):
        """Resolve collaborators and start global sync per config."""
        self._bus = self.locator.get_system(EventBus)
        if self.locator.has_system(QueryCache):
            self._cache = self.locator.get_system(QueryCache)
        else:
            self._cache = QueryCache()
        self._executor = CacheActionExecutor(self._cache)

        settings = self.config.data.sync
        self._key_map = EntityQueryKeyMap(settings.entity_query_keys)
        self._global_options = SyncOptions(
            enabled=settings.enabled,
            optimistic_update=settings.optimistic_update,
        )
        self._disconnect_config = self.config.on_changed.connect(self._on_config_changed)

        await super().initialize()
        self.start_global_sync(self._global_options)
        logger.info(f"DataSyncService initialized ({len(self._key_map)} mapped entities)")

    async def shutdown(self):
        """Release every subscription."""
        if self._disconnect_config is not None:
            self._disconnect_config()
            self._disconnect_config = None
        self.stop_global_sync()
        for session in list(self._entity_sessions):
            self.stop_entity_sync(session)
        logger.info("DataSyncService shut down")
        await super().shutdown()

    # === Accessors ===

    @property
    def cache(self) -> Optional[QueryCacheProtocol]:
        return self._cache

    @property
    def key_map(self) -> EntityQueryKeyMap:
        return self._key_map

    @property
    def global_session(self) -> Optional[DataSyncSession]:
        return self._global

    @property
    def entity_sessions(self) -> List[EntitySyncSession]:
        return list(self._entity_sessions)

    def _require_ready(self) -> None:
        if not self.is_ready:
            raise RuntimeError("DataSyncService is not initialized")

    # === Application-wide sync ===

    def start_global_sync(self, options: Optional[SyncOptions] = None) -> DataSyncSession:
        """
        Start application-wide sync, replacing any running session.

        Args:
            options: Sync options; defaults to the last options used

        Returns:
            The new session (inactive when options.enabled is False)

        Raises:
            SubscriptionError: If the event bus refuses the subscription
        """
        self._require_ready()
        if options is not None:
            self._global_options = options
        self.stop_global_sync()

        session = DataSyncSession(
            self._bus,
            self._executor,
            self._key_map,
            self._global_options,
            summary_interval=self.config.data.sync.summary_interval,
        )
        session.start()
        self._global = session
        return session

    def stop_global_sync(self) -> None:
        """Release the application-wide subscription, if any."""
        if self._global is None:
            return
        self._global.stop()
        self._global = None

    def set_global_sync_enabled(self, enabled: bool) -> DataSyncSession:
        """
        Toggle application-wide sync.

        Enabling always creates a fresh session; events published while
        disabled are not replayed.
        """
        if self._global is not None and self._global.options.enabled == enabled:
            return self._global
        return self.start_global_sync(replace(self._global_options, enabled=enabled))

    # === Per-entity sync ===

    def start_entity_sync(self, entity_type: str, on_event: Callable[[DataChangedEvent], Any]) -> EntitySyncSession:
        """
        Watch one entity type.

        Returns:
            Handle to pass to stop_entity_sync()

        Raises:
            SubscriptionError: If the event bus refuses the subscription
        """
        self._require_ready()
        session = EntitySyncSession(self._bus, self._executor, self._key_map, entity_type, on_event)
        session.start()
        self._entity_sessions.append(session)
        return session

    def stop_entity_sync(self, handle: EntitySyncSession) -> None:
        """Release a per-entity subscription. Unknown or released handles are ignored."""
        handle.stop()
        if handle in self._entity_sessions:
            self._entity_sessions.remove(handle)

    # === Config reactivity ===

    def _on_config_changed(self, section: str, key: str, value: Any) -> None:
        if section != "sync" or self._global is None:
            return
        if key == "enabled":
            self.set_global_sync_enabled(bool(value))
        elif key == "optimistic_update":
            logger.info(f"Restarting data sync: optimistic_update={value}")
            self.start_global_sync(replace(self._global_options, optimistic_update=bool(value)))
        elif key == "summary_interval":
            logger.info(f"sync.summary_interval={value} applies from the next data sync start")
        elif key == "entity_query_keys":
            logger.info("sync.entity_query_keys changed; the key map is rebuilt on the next service start")
