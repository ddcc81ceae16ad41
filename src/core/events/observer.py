from loguru import logger
from typing import Callable, List


class Signal:
    """
    In-process observer (synchronous), equivalent to Qt's Signal or C#'s event.

    Subscriber failures are logged and never stop delivery to the others,
    which suits notifications such as config changes and cache updates.

    Usage:
        on_changed = Signal("ConfigChanged")
        disconnect = on_changed.connect(lambda section, key, value: ...)
        on_changed.emit("sync", "enabled", False)
        disconnect()
    """
    def __init__(self, name: str = "Signal"):
        self.name = name
        self._subscribers: List[Callable] = []

    def connect(self, callback: Callable) -> Callable[[], None]:
        """Connect a callback; returns a function that disconnects it."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.disconnect(callback)

    def disconnect(self, callback: Callable):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def receiver_count(self) -> int:
        return len(self._subscribers)

    def emit(self, *args, **kwargs):
        # Snapshot: subscribers may disconnect themselves while handling
        for sub in list(self._subscribers):
            try:
                sub(*args, **kwargs)
            except Exception as e:
                logger.error(f"Signal '{self.name}' error in subscriber '{sub}': {e}")
