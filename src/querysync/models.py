"""
QuerySync - Data models.

DataChangedEvent is the unit of change notification delivered on the
"data-changed" channel. Entity names are plain strings so the backend can
introduce new entity types without a client release.
"""
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidEventError

# A cache key is an ordered path of segments, e.g. ("tasks", {"projectId": "p1"})
QuerySegment = Union[str, Mapping[str, Any]]
QueryKey = Tuple[QuerySegment, ...]


class DataAction(str, Enum):
    """Terminal state of the mutation that produced an event."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class DataChangedEvent(BaseModel):
    """
    Change notification for one record.

    Attributes:
        entity: Logical entity type ("task", "chat", ...)
        action: created / updated / deleted
        id: Record identifier, stable within the entity type
        data: Full or partial snapshot after the mutation (created/updated)
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    entity: str = Field(min_length=1)
    action: DataAction
    id: str
    data: Optional[Any] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Integer ids from older backends
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def has_data(self) -> bool:
        """
        Whether the snapshot is worth writing into the cache.

        None, False, zero and the empty string carry nothing; containers
        count even when empty, so an empty dict snapshot is still written.
        """
        data = self.data
        if data is None or isinstance(data, bool):
            return bool(data)
        if isinstance(data, (int, float)):
            # NaN is falsy too
            return data == data and data != 0
        if isinstance(data, (str, bytes)):
            return len(data) > 0
        return True

    @property
    def is_deletion(self) -> bool:
        return self.action is DataAction.DELETED

    @property
    def point_key(self) -> QueryKey:
        """Cache slot addressing this single record."""
        return (self.entity, self.id)

    @classmethod
    def from_payload(cls, payload: Any) -> "DataChangedEvent":
        """
        Decode a channel payload.

        Args:
            payload: DataChangedEvent, mapping, or JSON str/bytes

        Raises:
            InvalidEventError: If the payload is not a valid event
        """
        if isinstance(payload, cls):
            return payload
        try:
            if isinstance(payload, (str, bytes, bytearray)):
                return cls.model_validate_json(payload)
            if isinstance(payload, Mapping):
                return cls.model_validate(dict(payload))
        except ValidationError as e:
            raise InvalidEventError(f"Invalid data-changed payload: {e}", payload) from e
        raise InvalidEventError(
            f"Unsupported data-changed payload type: {type(payload).__name__}", payload
        )
