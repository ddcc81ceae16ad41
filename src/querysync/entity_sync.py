"""
QuerySync - Per-entity data sync.

A narrower subscription for components that only care about one entity
type. It invalidates that entity's queries and forwards matching events,
but never writes or removes point entries; use DataSyncSession for that.
"""
from typing import Any, Callable, Optional

from loguru import logger

from src.core.events import Channels, EventBus, Subscription
from .errors import InvalidEventError
from .executor import CacheActionExecutor
from .keys import EntityQueryKeyMap
from .models import DataChangedEvent


class EntitySyncSession:
    """
    Sync subscription filtered to one entity type.

    Sessions are independent of each other and of the global session;
    several may watch the same entity type.

    Example:
        session = EntitySyncSession(bus, executor, key_map, "task",
                                    lambda e: print(e.id, e.action))
        session.start()
    """

    def __init__(
        self,
        bus: EventBus,
        executor: CacheActionExecutor,
        key_map: EntityQueryKeyMap,
        entity_type: str,
        on_event: Callable[[DataChangedEvent], Any],
    ):
        if not entity_type:
            raise ValueError("entity_type must not be empty")
        self._bus = bus
        self._executor = executor
        self._key_map = key_map
        self.entity_type = entity_type
        self._on_event_cb = on_event
        self._subscription: Optional[Subscription] = None

    @property
    def is_active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self) -> None:
        """
        Raises:
            SubscriptionError: If the channel refuses the subscription
        """
        if self.is_active:
            return
        logger.debug(f"Setting up entity sync subscription: {self.entity_type}")
        self._subscription = self._bus.subscribe(Channels.DATA_CHANGED, self._on_event)

    def stop(self) -> None:
        if self._subscription is None:
            return
        logger.debug(f"Cleaning up entity sync subscription: {self.entity_type}")
        self._subscription.unsubscribe()
        self._subscription = None

    def _on_event(self, payload: Any) -> None:
        try:
            event = DataChangedEvent.from_payload(payload)
        except InvalidEventError as e:
            logger.warning(f"Entity sync ({self.entity_type}) ignoring undecodable payload: {e}")
            return

        if event.entity != self.entity_type:
            return

        logger.debug(f"Entity sync event received: {self.entity_type} action={event.action.value} id={event.id}")

        try:
            self._on_event_cb(event)
        except Exception as e:
            logger.exception(f"Error in entity sync callback for {self.entity_type}: {e}")

        self._executor.invalidate(self._key_map.resolve(self.entity_type))

    def __repr__(self) -> str:
        state = "active" if self.is_active else "stopped"
        return f"<EntitySyncSession {self.entity_type} ({state})>"
