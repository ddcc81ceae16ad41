"""
EventBus - Comprehensive Unit Tests

Tests for the named-channel event bus covering:
- Subscription handles and idempotent release
- Event publishing (sync/async)
- Delivery isolation and error reporting
- Subscription setup errors
"""
import pytest
from unittest.mock import MagicMock
from src.core.events import Channels, EventBus, Subscription, SubscriptionError, DeliveryError


class TestEventBusBasic:
    """Basic EventBus functionality tests."""

    def test_event_bus_initialization(self, event_bus):
        """Test EventBus initializes with empty subscribers."""
        assert event_bus.subscriber_count() == 0
        assert event_bus.closed is False

    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(self, event_bus):
        """Test EventBus lifecycle methods."""
        await event_bus.initialize()
        assert event_bus.is_ready is True

        event_bus.subscribe("test.event", lambda data: None)
        await event_bus.shutdown()
        assert event_bus.subscriber_count() == 0
        assert event_bus.closed is True


class TestEventBusSubscription:
    """Test event subscription functionality."""

    def test_subscribe_returns_handle(self, event_bus):
        def handler(data):
            pass

        sub = event_bus.subscribe("test.event", handler)

        assert isinstance(sub, Subscription)
        assert sub.active
        assert sub.channel == "test.event"
        assert event_bus.subscriber_count("test.event") == 1

    def test_subscribe_duplicate_handler(self, event_bus):
        """Test subscribing same handler twice doesn't duplicate."""
        def handler(data):
            pass

        first = event_bus.subscribe("test.event", handler)
        second = event_bus.subscribe("test.event", handler)

        assert first is second
        assert event_bus.subscriber_count("test.event") == 1

    def test_subscribe_multiple_channels(self, event_bus):
        def handler(data):
            pass

        event_bus.subscribe("event.one", handler)
        event_bus.subscribe("event.two", handler)

        assert event_bus.subscriber_count() == 2

    @pytest.mark.parametrize("channel", ["", None, 42])
    def test_subscribe_invalid_channel(self, event_bus, channel):
        with pytest.raises(SubscriptionError):
            event_bus.subscribe(channel, lambda data: None)

    def test_subscribe_non_callable(self, event_bus):
        with pytest.raises(SubscriptionError):
            event_bus.subscribe("test.event", "not a function")

    @pytest.mark.asyncio
    async def test_subscribe_after_shutdown(self, event_bus):
        await event_bus.initialize()
        await event_bus.shutdown()

        with pytest.raises(SubscriptionError):
            event_bus.subscribe("test.event", lambda data: None)


class TestEventBusUnsubscription:
    """Test event unsubscription functionality."""

    def test_unsubscribe_via_handle(self, event_bus):
        handler = MagicMock()
        unsubscribe = event_bus.subscribe("test.event", handler)

        unsubscribe()
        event_bus.publish_sync("test.event", 1)

        handler.assert_not_called()
        assert unsubscribe.active is False

    def test_unsubscribe_twice_is_noop(self, event_bus):
        """Releasing the same handle twice removes the handler exactly once."""
        handler_a = MagicMock()
        handler_b = MagicMock()
        sub_a = event_bus.subscribe("test.event", handler_a)
        event_bus.subscribe("test.event", handler_b)

        sub_a.unsubscribe()
        sub_a.unsubscribe()

        assert event_bus.subscriber_count("test.event") == 1
        event_bus.publish_sync("test.event", "x")
        handler_b.assert_called_once_with("x")

    @pytest.mark.asyncio
    async def test_unsubscribe_after_shutdown(self, event_bus):
        await event_bus.initialize()
        sub = event_bus.subscribe("test.event", lambda data: None)
        await event_bus.shutdown()

        # Should not raise exception
        sub()
        sub()
        assert sub.active is False

    def test_unsubscribe_by_handler(self, event_bus):
        handler = MagicMock()
        sub = event_bus.subscribe("test.event", handler)

        event_bus.unsubscribe("test.event", handler)

        assert sub.active is False
        assert event_bus.subscriber_count("test.event") == 0

    def test_unsubscribe_nonexistent_event(self, event_bus):
        """Test unsubscribing from non-existent event doesn't error."""
        event_bus.unsubscribe("nonexistent.event", lambda data: None)

    def test_unsubscribe_during_delivery_skips_later_subscriber(self, event_bus):
        """A subscription released mid-delivery receives no further events."""
        received = []
        subs = {}

        def first(data):
            received.append(("first", data))
            subs["second"].unsubscribe()

        def second(data):
            received.append(("second", data))

        event_bus.subscribe("test.event", first)
        subs["second"] = event_bus.subscribe("test.event", second)

        event_bus.publish_sync("test.event", 1)

        assert received == [("first", 1)]


class TestEventBusPublishing:
    """Test event publishing functionality."""

    def test_publish_sync_in_subscription_order(self, event_bus):
        call_order = []

        event_bus.subscribe("test.event", lambda data: call_order.append((1, data)))
        event_bus.subscribe("test.event", lambda data: call_order.append((2, data)))

        event_bus.publish_sync("test.event", "a")
        event_bus.publish_sync("test.event", "b")

        assert call_order == [(1, "a"), (2, "a"), (1, "b"), (2, "b")]

    def test_publish_without_subscribers(self, event_bus):
        event_bus.publish_sync("nobody.listens", {"value": 1})

    @pytest.mark.asyncio
    async def test_publish_to_sync_handler(self, event_bus):
        received_data = []

        def handler(data):
            received_data.append(data)

        event_bus.subscribe("test.event", handler)
        await event_bus.publish("test.event", {"value": 42})

        assert received_data == [{"value": 42}]

    @pytest.mark.asyncio
    async def test_publish_to_async_handler(self, event_bus):
        received_data = []

        async def handler(data):
            received_data.append(data)

        event_bus.subscribe("test.event", handler)
        await event_bus.publish("test.event", {"value": 99})

        assert received_data == [{"value": 99}]


class TestEventBusErrorHandling:
    """Failures are isolated per subscriber and reported to the publisher."""

    def test_failing_handler_does_not_starve_others(self, event_bus, log_capture):
        healthy = MagicMock()

        def broken(data):
            raise RuntimeError("boom")

        event_bus.subscribe("test.event", broken)
        event_bus.subscribe("test.event", healthy)

        with pytest.raises(DeliveryError) as exc_info:
            event_bus.publish_sync("test.event", "payload")

        healthy.assert_called_once_with("payload")
        assert exc_info.value.channel == "test.event"
        assert isinstance(exc_info.value.first, RuntimeError)
        assert len(exc_info.value.failures) == 1
        assert "boom" in log_capture.text

    @pytest.mark.asyncio
    async def test_async_publish_reports_failures(self, event_bus):
        async def broken(data):
            raise ValueError("async boom")

        event_bus.subscribe("test.event", broken)

        with pytest.raises(DeliveryError) as exc_info:
            await event_bus.publish("test.event", None)

        assert isinstance(exc_info.value.first, ValueError)


class TestChannels:
    """Channel name constants."""

    def test_process_channels_are_per_process(self, event_bus):
        """Test process channel names isolate subscribers of different processes."""
        handler = MagicMock()
        assert Channels.process_output("p1") == "process-output-p1"
        assert Channels.process_status("p1") == "process-status-p1"

        event_bus.subscribe(Channels.process_output("p1"), handler)
        event_bus.publish_sync(Channels.process_output("p2"), b"ignored")
        event_bus.publish_sync(Channels.process_output("p1"), b"line\n")

        handler.assert_called_once_with(b"line\n")
