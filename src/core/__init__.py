"""
Foundation Core - Application Infrastructure.

Provides core systems shared by the sync layer:
- ServiceLocator: System registry and lifecycle driver
- BaseSystem: Abstract base for all systems
- ConfigManager: Configuration with persistence
- EventBus: Named-channel pub/sub messaging
- setup_logging: Loguru sinks

Usage:
    from src.core import sl, EventBus

    sl.init("config.json")
    sl.register_system(EventBus)
    await sl.start_all()
"""
from .base_system import BaseSystem
from .locator import ServiceLocator, sl
from .config import (
    ConfigManager,
    AppConfig,
    GeneralSettings,
    SyncSettings,
)
from .events import (
    Signal,
    EventBus,
    Subscription,
    SubscriptionError,
    DeliveryError,
    Channels,
)
from .logging import setup_logging

__all__ = [
    # Core infrastructure
    "BaseSystem",
    "ServiceLocator",
    "sl",

    # Configuration
    "ConfigManager",
    "AppConfig",
    "GeneralSettings",
    "SyncSettings",

    # Events
    "Signal",
    "EventBus",
    "Subscription",
    "SubscriptionError",
    "DeliveryError",
    "Channels",

    # Logging
    "setup_logging",
]
