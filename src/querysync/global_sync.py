"""
QuerySync - Application-wide data sync.

A DataSyncSession owns one subscription to the data-changed channel and
keeps the query cache consistent with every change the backend reports,
whichever client caused it.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger

from src.core.events import Channels, EventBus, Subscription
from .errors import InvalidEventError
from .executor import CacheActionExecutor
from .keys import EntityQueryKeyMap
from .models import DataChangedEvent


@dataclass(frozen=True)
class SyncOptions:
    """
    Attributes:
        enabled: When False, start() subscribes to nothing
        on_data_change: Best-effort callback invoked for every event
            (e.g. toast notifications); its failures never block cache updates
        optimistic_update: Write event data into (entity, id) for creates/updates
    """
    enabled: bool = True
    on_data_change: Optional[Callable[[DataChangedEvent], Any]] = None
    optimistic_update: bool = True


class DataSyncSession:
    """
    One application-wide sync subscription.

    A session is created when its owning scope enables sync and discarded
    when it disables; a new session starts counting from zero. Events
    emitted while no session is active are not replayed.

    Example:
        session = DataSyncSession(bus, executor, EntityQueryKeyMap(),
                                  SyncOptions(on_data_change=notify))
        session.start()
        ...
        session.stop()
    """

    def __init__(
        self,
        bus: EventBus,
        executor: CacheActionExecutor,
        key_map: EntityQueryKeyMap,
        options: Optional[SyncOptions] = None,
        summary_interval: int = 100,
    ):
        if summary_interval <= 0:
            raise ValueError(f"summary_interval must be positive, got {summary_interval}")
        self._bus = bus
        self._executor = executor
        self._key_map = key_map
        self.options = options or SyncOptions()
        self.summary_interval = summary_interval

        self._subscription: Optional[Subscription] = None
        self._event_count = 0
        self._initialized = False

    @property
    def event_count(self) -> int:
        return self._event_count

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def is_active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self) -> None:
        """
        Subscribe to the data-changed channel.

        Raises:
            SubscriptionError: If the channel refuses the subscription
        """
        if not self.options.enabled:
            logger.debug("Data sync disabled")
            return

        if self.is_active:
            logger.warning("Data sync subscription already set up, ignoring duplicate start")
            return

        self._subscription = self._bus.subscribe(Channels.DATA_CHANGED, self._on_event)
        self._event_count = 0
        if not self._initialized:
            logger.info("Setting up data sync subscription")
            self._initialized = True

    def stop(self) -> None:
        """Release the subscription. Safe to call repeatedly."""
        if self._subscription is None:
            return
        logger.info(f"Cleaning up data sync subscription (total_events_received={self._event_count})")
        self._subscription.unsubscribe()
        self._subscription = None
        self._initialized = False

    def _on_event(self, payload: Any) -> None:
        try:
            event = DataChangedEvent.from_payload(payload)
        except InvalidEventError as e:
            logger.error(f"Dropping undecodable data-changed payload: {e}")
            return

        self._event_count += 1
        count = self._event_count
        logger.debug(
            f"Data changed event received: entity={event.entity} action={event.action.value} "
            f"id={event.id} has_data={event.has_data} event_count={count}"
        )

        callback = self.options.on_data_change
        if callback is not None:
            try:
                callback(event)
            except Exception as e:
                logger.exception(f"Error in on_data_change callback: {e}")

        keys = self._key_map.resolve(event.entity)
        self._executor.apply(event, keys, optimistic_update=self.options.optimistic_update)

        if count == 1 or count % self.summary_interval == 0:
            logger.info(
                f"Data sync event processed: total_events={count} "
                f"latest_entity={event.entity} latest_action={event.action.value}"
            )
