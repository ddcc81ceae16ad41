from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .locator import ServiceLocator
    from .config import ConfigManager


class BaseSystem(ABC):
    """
    Abstract Base Class for all core systems (EventBus, DataSyncService, etc.).
    Ensures consistent initialization and access to globals (Locator, Config).

    Systems can be driven by the ServiceLocator or used directly as
    async context managers:

        async with EventBus(locator, config) as bus:
            bus.subscribe("data-changed", handler)
    """
    def __init__(self, locator: 'ServiceLocator', config: 'ConfigManager'):
        self.locator = locator
        self.config = config
        self._is_ready = False

    @abstractmethod
    async def initialize(self):
        """
        Async initialization logic (e.g. resolving collaborators, subscribing).
        Should be called by the ServiceLocator during startup.
        """
        self._is_ready = True

    @abstractmethod
    async def shutdown(self):
        """
        Cleanup logic (e.g. releasing subscriptions).
        """
        self._is_ready = False

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    async def __aenter__(self):
        """Async context manager entry: Initialize system."""
        if not self._is_ready:
            await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit: Shutdown system."""
        if self._is_ready:
            await self.shutdown()
