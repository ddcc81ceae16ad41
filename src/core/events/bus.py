"""
EventBus - Named-channel Event System

Provides a single event bus for decoupled publish/subscribe communication.
Every subscription is represented by a Subscription handle whose release is
idempotent, so owners can tear down without tracking whether they already did.
"""
import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple
from loguru import logger

from src.core.base_system import BaseSystem


class SubscriptionError(Exception):
    """Raised when a subscription cannot be set up."""
    pass


class DeliveryError(Exception):
    """
    Raised to the publisher after an event reached every subscriber
    but one or more of them failed.

    Attributes:
        channel: Channel the event was published on
        failures: List of (handler, exception) pairs
    """

    def __init__(self, channel: str, failures: List[Tuple[Callable, BaseException]]):
        self.channel = channel
        self.failures = failures
        names = ", ".join(_handler_name(h) for h, _ in failures)
        super().__init__(
            f"{len(failures)} handler(s) failed on '{channel}': {names}"
        )

    @property
    def first(self) -> BaseException:
        return self.failures[0][1]


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class Subscription:
    """
    Handle for one handler registered on one channel.

    Calling the handle (or its unsubscribe method) removes the handler.
    Repeated calls, and calls after the bus has shut down, do nothing.
    """

    def __init__(self, bus: "EventBus", channel: str, handler: Callable):
        self._bus = bus
        self.channel = channel
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._release(self)

    __call__ = unsubscribe

    def __repr__(self) -> str:
        state = "active" if self._active else "released"
        return f"<Subscription {self.channel}:{_handler_name(self.handler)} ({state})>"


class EventBus(BaseSystem):
    """
    Unified event bus for application-wide pub/sub.

    Usage:
        # Subscribe
        unsubscribe = event_bus.subscribe("data-changed", handle_change)

        # Publish from synchronous code (transport callbacks, tests)
        event_bus.publish_sync("data-changed", {"entity": "task", ...})

        # Publish from a coroutine
        await event_bus.publish("data-changed", payload)

        # Release
        unsubscribe()
    """

    def __init__(self, locator, config):
        super().__init__(locator, config)
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._closed = False

    async def initialize(self):
        """Initialize event bus."""
        self._closed = False
        logger.info("EventBus initialized")
        await super().initialize()

    async def shutdown(self):
        """Shutdown event bus. Outstanding handles become no-ops."""
        for subs in self._subscribers.values():
            for sub in subs:
                sub._active = False
        self._subscribers.clear()
        self._closed = True
        await super().shutdown()

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, channel: str, handler: Callable) -> Subscription:
        """
        Subscribe to a channel.

        Args:
            channel: Channel name (e.g., "data-changed")
            handler: Callback function (sync or async) receiving the payload

        Returns:
            Subscription handle; call it to unsubscribe

        Raises:
            SubscriptionError: If the bus is shut down, the channel name is
                empty or the handler is not callable
        """
        if self._closed:
            raise SubscriptionError(f"Cannot subscribe to '{channel}': event bus is shut down")
        if not channel or not isinstance(channel, str):
            raise SubscriptionError(f"Invalid channel name: {channel!r}")
        if not callable(handler):
            raise SubscriptionError(f"Handler for '{channel}' is not callable: {handler!r}")

        subs = self._subscribers.setdefault(channel, [])
        for existing in subs:
            if existing.handler == handler:
                return existing

        sub = Subscription(self, channel, handler)
        subs.append(sub)
        logger.debug(f"Subscribed to {channel}: {_handler_name(handler)}")
        return sub

    def unsubscribe(self, channel: str, handler: Callable) -> None:
        """
        Unsubscribe a handler from a channel.

        Args:
            channel: Channel name
            handler: Handler to remove
        """
        for sub in list(self._subscribers.get(channel, [])):
            if sub.handler == handler:
                sub.unsubscribe()

    def _release(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.channel)
        if not subs or sub not in subs:
            return
        subs.remove(sub)
        if not subs:
            del self._subscribers[sub.channel]
        logger.debug(f"Unsubscribed from {sub.channel}: {_handler_name(sub.handler)}")

    def subscriber_count(self, channel: Optional[str] = None) -> int:
        """Number of live subscriptions on a channel, or on all channels."""
        if channel is not None:
            return len(self._subscribers.get(channel, []))
        return sum(len(subs) for subs in self._subscribers.values())

    async def publish(self, channel: str, data: Any = None) -> None:
        """
        Publish an event to all subscribers.

        Args:
            channel: Channel name
            data: Optional payload to pass to handlers

        Raises:
            DeliveryError: If any handler raised
        """
        failures = []
        for sub in list(self._subscribers.get(channel, [])):
            if not sub.active:
                continue
            try:
                if inspect.iscoroutinefunction(sub.handler):
                    await sub.handler(data)
                else:
                    handler_result = sub.handler(data)
                    if inspect.isawaitable(handler_result):
                        await handler_result
            except Exception as e:
                logger.exception(f"Error in handler for {channel}: {e}")
                failures.append((sub.handler, e))

        if failures:
            raise DeliveryError(channel, failures)

    def publish_sync(self, channel: str, data: Any = None) -> None:
        """
        Publish an event synchronously.

        Coroutine handlers are scheduled on the running loop.

        Args:
            channel: Channel name
            data: Optional payload to pass to handlers

        Raises:
            DeliveryError: If any synchronous handler raised
        """
        failures = []
        for sub in list(self._subscribers.get(channel, [])):
            if not sub.active:
                continue
            try:
                if inspect.iscoroutinefunction(sub.handler):
                    asyncio.get_running_loop().create_task(sub.handler(data))
                else:
                    sub.handler(data)
            except Exception as e:
                logger.exception(f"Error in sync handler for {channel}: {e}")
                failures.append((sub.handler, e))

        if failures:
            raise DeliveryError(channel, failures)
