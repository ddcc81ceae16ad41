from typing import Any, Dict, List, Optional, Type, TypeVar
from loguru import logger

from .base_system import BaseSystem
from .config import ConfigManager

T = TypeVar('T')


class ServiceLocator:
    """
    Registry of application systems.

    Systems are registered by class and started in registration order,
    stopped in reverse order.

    Usage:
        sl.init("config.json")
        sl.register_system(EventBus)
        sl.register_system(DataSyncService)
        await sl.start_all()
    """

    def __init__(self):
        self.config: Optional[ConfigManager] = None
        self._systems: Dict[type, Any] = {}
        self._order: List[type] = []
        self.is_ready = False

    def init(self, config_path: str = "config.json"):
        if self.is_ready: return

        self.config = ConfigManager(config_path)
        self.is_ready = True

    def register_system(self, system_cls: Type[T], instance: Optional[T] = None) -> T:
        """
        Register a system.

        Args:
            system_cls: Lookup key, and the class to instantiate when no instance is given
            instance: Pre-built object (any type, e.g. a shared QueryCache)

        Returns:
            The registered instance
        """
        if system_cls in self._systems:
            logger.warning(f"System {system_cls.__name__} already registered, replacing")
        else:
            self._order.append(system_cls)

        if instance is None:
            instance = system_cls(self, self.config)
        self._systems[system_cls] = instance
        logger.debug(f"Registered system: {system_cls.__name__}")
        return instance

    def get_system(self, system_cls: Type[T]) -> T:
        """
        Raises:
            KeyError: If the system is not registered
        """
        try:
            return self._systems[system_cls]
        except KeyError:
            raise KeyError(f"System not registered: {system_cls.__name__}") from None

    def has_system(self, system_cls: type) -> bool:
        return system_cls in self._systems

    async def start_all(self):
        for cls in self._order:
            system = self._systems[cls]
            if isinstance(system, BaseSystem) and not system.is_ready:
                await system.initialize()
        logger.info(f"Started {len(self._order)} systems")

    async def stop_all(self):
        for cls in reversed(self._order):
            system = self._systems[cls]
            if isinstance(system, BaseSystem) and system.is_ready:
                try:
                    await system.shutdown()
                except Exception as e:
                    logger.error(f"Failed to stop {cls.__name__}: {e}")
        logger.info("All systems stopped")


# Global access
sl = ServiceLocator()
