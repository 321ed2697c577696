"""Wire models for the streaming protocol."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class MethodName(str, Enum):
    """The closed method table."""

    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"


class EventType(str, Enum):
    """Kinds of events pushed on a connection's stream."""

    ENDPOINT = "endpoint"
    RESULT = "result"
    ERROR = "error"
    NOTIFICATION = "notification"


class Message(BaseModel):
    """Inbound command message.

    ``method`` is kept as a plain string so unknown methods reach the
    dispatcher and come back as a structured error event.
    """

    model_config = ConfigDict(extra="ignore")

    method: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    id: str | int | None = None


class ErrorPayload(BaseModel):
    """Client-facing error description."""

    code: str
    type: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class Event(BaseModel):
    """Outbound event delivered on a stream."""

    type: EventType
    id: str | int | None = None
    result: Any = None
    error: ErrorPayload | None = None

    @classmethod
    def for_result(cls, message_id: str | int | None, result: Any) -> "Event":
        return cls(type=EventType.RESULT, id=message_id, result=result)

    @classmethod
    def for_error(
        cls, message_id: str | int | None, error: ErrorPayload
    ) -> "Event":
        return cls(type=EventType.ERROR, id=message_id, error=error)

    @classmethod
    def notification(cls, payload: dict) -> "Event":
        return cls(type=EventType.NOTIFICATION, result=payload)

    def to_wire(self) -> dict:
        """JSON object sent to the client; absent fields are left out."""
        return self.model_dump(mode="json", exclude_none=True)


class MessageAck(BaseModel):
    """Immediate acknowledgement of a POSTed message."""

    status: Literal["accepted", "completed"] = "accepted"
    id: str | int | None = None
    result: Any = None


__all__ = [
    "MethodName",
    "EventType",
    "Message",
    "ErrorPayload",
    "Event",
    "MessageAck",
]
