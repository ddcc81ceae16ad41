"""
QuerySync - Error taxonomy.

Channel errors (subscription setup) are raised by the EventBus as
SubscriptionError; the classes below cover the sync layer itself.
"""


class QuerySyncError(Exception):
    """Base class for sync layer errors."""
    pass


class InvalidEventError(QuerySyncError, ValueError):
    """A channel payload could not be decoded into a DataChangedEvent."""

    def __init__(self, message: str, payload=None):
        super().__init__(message)
        self.payload = payload


class CacheError(QuerySyncError):
    """The query cache cannot perform an operation (e.g. it was closed)."""
    pass


class KeyMapError(QuerySyncError, ValueError):
    """Invalid entity -> query key configuration."""
    pass
