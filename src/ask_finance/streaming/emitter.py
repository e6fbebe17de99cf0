"""Stream emitter for ask-finance.

A single-direction, ordered, append-only channel from the tool-calling loop
to the caller. Emitting never blocks: events go into an unbounded queue the
caller drains with ``async for``.
"""

import asyncio
from typing import AsyncIterator, Literal, Optional

from ..errors import StreamClosedError
from ..models import (
    CanvasEvent,
    Citation,
    CitationsEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ThreadEvent,
    ToolCall,
    ToolOutput,
    ToolResult,
    ToolResultEvent,
    ToolStartEvent,
    Usage,
)
from ..utils import get_logger

logger = get_logger(__name__)

ErrorKind = Literal["model_error", "max_iterations", "timeout", "cancelled", "internal"]


class StreamEmitter:
    """Ordered event channel for one request.

    The thread acknowledgement is emitted on construction, so it is always
    first. After a terminal event (``done`` or ``error``) any further emit
    raises StreamClosedError.

    Attributes:
        thread_id: Conversation the stream belongs to
        history: Every event emitted so far, in order
        citations: Citations routed so far
        artifacts: Canvas artifacts routed so far
    """

    def __init__(self, thread_id: str) -> None:
        self.thread_id = thread_id
        self.history: list[StreamEvent] = []
        self.citations: list[Citation] = []
        self.artifacts: list[ToolOutput] = []
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._closed = False
        self.emit(ThreadEvent(thread_id=thread_id))

    @property
    def closed(self) -> bool:
        """Whether the terminal event has been emitted."""
        return self._closed

    @property
    def text(self) -> str:
        """Answer text reconstructed from the text events."""
        return "".join(event.content for event in self.history if isinstance(event, TextEvent))

    def emit(self, event: StreamEvent) -> None:
        """Append an event to the stream.

        Args:
            event: Event to deliver

        Raises:
            StreamClosedError: If the terminal event was already emitted
        """
        if self._closed:
            raise StreamClosedError(f"Cannot emit '{event.event}' after the terminal event")
        self.history.append(event)
        self._queue.put_nowait(event)
        if event.terminal:
            self._closed = True

    def text_delta(self, content: str) -> None:
        if content:
            self.emit(TextEvent(content=content))

    def tool_start(self, call: ToolCall) -> None:
        self.emit(ToolStartEvent(tool=call.name, call_id=call.id, input=call.arguments))

    def tool_result(self, result: ToolResult) -> None:
        """Emit a tool result and route its side payloads.

        Citations and canvas artifacts follow the result immediately so the
        caller can render them progressively.
        """
        self.emit(ToolResultEvent(tool=result.name, call_id=result.call_id, result=result.output))

        citations = result.citations
        if citations:
            self.citations.extend(citations)
            self.emit(CitationsEvent(citations=citations))

        if result.is_canvas:
            self.artifacts.append(result.output)
            self.emit(CanvasEvent(artifact=result.output))

    def done(self, usage: Usage, iterations: int = 0, session_id: Optional[str] = None) -> None:
        self.emit(
            DoneEvent(
                thread_id=self.thread_id,
                session_id=session_id,
                usage=usage,
                iterations=iterations,
            )
        )

    def error(self, message: str, kind: ErrorKind = "internal") -> None:
        self.emit(ErrorEvent(message=message, kind=kind))

    def close_with_error(self, message: str, kind: ErrorKind = "internal") -> None:
        """Emit an error event unless the stream is already terminated."""
        if self._closed:
            logger.debug(f"Stream already closed, dropping error: {message}")
            return
        self.error(message, kind)

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        """Yield events as they are emitted, ending after the terminal event."""
        while True:
            event = await self._queue.get()
            yield event
            if event.terminal:
                return
