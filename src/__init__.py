"""
QuerySync - Client-side data consistency layer

Keeps a local reactive query cache synchronized with backend-owned
entities across independent clients (application windows, browser tabs).
"""

# Core systems
from src.core.base_system import BaseSystem
from src.core.locator import ServiceLocator, sl
from src.core.config import ConfigManager, AppConfig, GeneralSettings, SyncSettings
from src.core.events import Signal, EventBus, Channels
from src.core.logging import setup_logging

# Sync layer
from src.querysync import (
    DataAction,
    DataChangedEvent,
    EntityQueryKeyMap,
    QueryCache,
    CacheActionExecutor,
    DataSyncSession,
    EntitySyncSession,
    SyncOptions,
    DataSyncService,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "BaseSystem",
    "ServiceLocator",
    "sl",
    "ConfigManager",
    "AppConfig",
    "GeneralSettings",
    "SyncSettings",
    "Signal",
    "EventBus",
    "Channels",
    "setup_logging",

    # Sync
    "DataAction",
    "DataChangedEvent",
    "EntityQueryKeyMap",
    "QueryCache",
    "CacheActionExecutor",
    "DataSyncSession",
    "EntitySyncSession",
    "SyncOptions",
    "DataSyncService",
]
