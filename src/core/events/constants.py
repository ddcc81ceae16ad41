"""
Channel Name Constants.

Standard channel names for pub/sub messaging on the EventBus.
Names follow the backend's channel naming so transports can forward
messages without translation.

Usage:
    from src.core.events import Channels, EventBus

    event_bus.subscribe(Channels.DATA_CHANGED, on_data_changed)
    event_bus.subscribe(Channels.process_output(process_id), on_output)
"""


class Channels:
    """
    Standard channel names for EventBus.

    Example:
        >>> from src.core.events import Channels
        >>> Channels.process_status("p1")
        'process-status-p1'
    """

    # Entity created/updated/deleted notifications
    DATA_CHANGED = "data-changed"

    @staticmethod
    def process_output(process_id: str) -> str:
        """Channel carrying stdout/stderr chunks of one process."""
        return f"process-output-{process_id}"

    @staticmethod
    def process_status(process_id: str) -> str:
        """Channel carrying status transitions of one process."""
        return f"process-status-{process_id}"
