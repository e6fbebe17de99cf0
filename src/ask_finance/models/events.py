"""Stream event variants for ask-finance.

Events are delivered to the caller in order. The ``event`` field is the
wire event name; everything else becomes the JSON data body.
"""

from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import WireModel
from .outputs import Citation, ToolOutput
from .state import Usage


class StreamEventBase(WireModel):
    """Common behaviour of all stream events."""

    terminal: ClassVar[bool] = False

    def payload(self) -> dict[str, Any]:
        """JSON body of the event (everything except the event name)."""
        body = self.to_wire()
        body.pop("event", None)
        return body


class ThreadEvent(StreamEventBase):
    """Acknowledges the request and names the conversation. Always first."""

    event: Literal["thread"] = "thread"
    thread_id: str


class TextEvent(StreamEventBase):
    """An increment of the final answer text."""

    event: Literal["text"] = "text"
    content: str


class ToolStartEvent(StreamEventBase):
    event: Literal["tool_start"] = "tool_start"
    tool: str
    call_id: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(StreamEventBase):
    event: Literal["tool_result"] = "tool_result"
    tool: str
    call_id: str
    result: ToolOutput


class CitationsEvent(StreamEventBase):
    event: Literal["citations"] = "citations"
    citations: list[Citation]


class CanvasEvent(StreamEventBase):
    """A visual artifact, emitted the moment the producing tool finishes."""

    event: Literal["canvas"] = "canvas"
    artifact: ToolOutput

    def payload(self) -> dict[str, Any]:
        # Canvas bodies are the artifact itself: {"type": ..., "data": ...}
        return self.artifact.to_wire()


class DoneEvent(StreamEventBase):
    terminal: ClassVar[bool] = True

    event: Literal["done"] = "done"
    thread_id: str
    session_id: Optional[str] = None
    usage: Usage
    iterations: int = 0


class ErrorEvent(StreamEventBase):
    terminal: ClassVar[bool] = True

    event: Literal["error"] = "error"
    message: str
    kind: Literal["model_error", "max_iterations", "timeout", "cancelled", "internal"] = "internal"


StreamEvent = Annotated[
    Union[
        ThreadEvent,
        TextEvent,
        ToolStartEvent,
        ToolResultEvent,
        CitationsEvent,
        CanvasEvent,
        DoneEvent,
        ErrorEvent,
    ],
    Field(discriminator="event"),
]

STREAM_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)
