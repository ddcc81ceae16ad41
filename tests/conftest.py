import pytest
from unittest.mock import MagicMock
from loguru import logger

from src.core.events import EventBus
from src.querysync.cache import QueryCache


class LogCapture:
    """Collects loguru records emitted during a test."""

    def __init__(self):
        self.records = []

    def __call__(self, message):
        record = message.record
        self.records.append((record["level"].name, record["message"]))

    def messages(self, level=None, contains=None):
        return [
            msg for lvl, msg in self.records
            if (level is None or lvl == level) and (contains is None or contains in msg)
        ]

    @property
    def text(self) -> str:
        return "\n".join(msg for _, msg in self.records)


@pytest.fixture
def log_capture():
    capture = LogCapture()
    handler_id = logger.add(capture, level="DEBUG", format="{message}")
    yield capture
    logger.remove(handler_id)


@pytest.fixture
def event_bus():
    """EventBus wired to mock locator/config."""
    return EventBus(MagicMock(), MagicMock())


@pytest.fixture
def query_cache():
    return QueryCache()


@pytest.fixture
def mock_cache():
    """Cache double recording every contract call in order."""
    cache = MagicMock(spec=["invalidate_queries", "set_query_data", "remove_queries"])
    return cache
