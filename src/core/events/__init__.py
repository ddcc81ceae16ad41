"""
Event System - Unified Pub/Sub Messaging.

Provides:
- Signal: Simple observer pattern for sync notifications (e.g., config changes)
- EventBus: Named-channel pub/sub with idempotent Subscription handles
- Channels: Standard channel names for type-safe subscriptions

Usage:
    from src.core.events import EventBus, Channels

    # Subscribe to events
    unsubscribe = event_bus.subscribe(Channels.DATA_CHANGED, on_data_changed)

    # Publish events
    event_bus.publish_sync(Channels.DATA_CHANGED, {"entity": "task", ...})
"""
from .observer import Signal
from .bus import EventBus, Subscription, SubscriptionError, DeliveryError
from .constants import Channels


__all__ = [
    "Signal",
    "EventBus",
    "Subscription",
    "SubscriptionError",
    "DeliveryError",
    "Channels",
]
