"""
Live progress feed event schemas.

Dependencies: pydantic
System role: WebSocket progress protocol schemas
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class FeedEventType(str, Enum):
    """Server-to-client event types of the import progress feed."""

    CONNECTED = "connected"
    PROGRESS = "progress"
    FINISHED = "finished"
    TIMEOUT = "timeout"
    ERROR = "error"


class FeedEvent(BaseModel):
    """
    Progress feed event.

    Attributes:
        event: Event type identifier
        data: Event-specific payload
    """

    event: FeedEventType
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event.value, "data": self.data}
