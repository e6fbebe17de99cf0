"""Server-Sent Events wire format for ask-finance.

Each stream event becomes one frame::

    event: <name>
    data: <json>

followed by a blank line.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator

from ..models import STREAM_EVENT_ADAPTER, TOOL_OUTPUT_ADAPTER, CanvasEvent, StreamEvent


def encode_event(event: StreamEvent) -> str:
    """Encode a stream event as one SSE frame.

    Args:
        event: Event to encode

    Returns:
        Frame text including the terminating blank line
    """
    data = json.dumps(event.payload(), ensure_ascii=False)
    return f"event: {event.event}\ndata: {data}\n\n"


@dataclass
class SSEFrame:
    """Represents a single Server-Sent Event frame.

    Attributes:
        event_type: Event name
        data: Parsed JSON data from the frame
        raw_data: Raw data string before parsing
        timestamp: When the frame was parsed
    """

    event_type: str
    data: dict[str, Any]
    raw_data: str
    timestamp: datetime

    @classmethod
    def parse(cls, raw_frame: str) -> "SSEFrame":
        """Parse SSE frame text into an SSEFrame.

        Args:
            raw_frame: Frame text (e.g., "event: text\\ndata: {...}")

        Returns:
            Parsed SSEFrame
        """
        event_type = "message"
        data: dict[str, Any] = {}
        data_lines: list[str] = []

        for line in raw_frame.strip().split("\n"):
            line = line.strip()
            if not line:
                continue
            if line.startswith("event:"):
                event_type = line[6:].strip()
            elif line.startswith("data:"):
                data_lines.append(line[5:].strip())

        raw_data = "\n".join(data_lines)
        if raw_data:
            try:
                parsed = json.loads(raw_data)
                data = parsed if isinstance(parsed, dict) else {"value": parsed}
            except json.JSONDecodeError:
                data = {"raw": raw_data}

        return cls(event_type=event_type, data=data, raw_data=raw_data, timestamp=datetime.now())

    def to_event(self) -> StreamEvent:
        """Decode into a typed stream event.

        Raises:
            pydantic.ValidationError: If the frame is not a known event
        """
        if self.event_type == "canvas":
            return CanvasEvent(artifact=TOOL_OUTPUT_ADAPTER.validate_python(self.data))
        return STREAM_EVENT_ADAPTER.validate_python({**self.data, "event": self.event_type})


def iter_frames(body: str) -> Iterator[SSEFrame]:
    """Split an SSE body into frames."""
    for chunk in body.replace("\r\n", "\n").split("\n\n"):
        if chunk.strip():
            yield SSEFrame.parse(chunk)


def decode_stream(body: str) -> list[StreamEvent]:
    """Decode a complete SSE body into typed events, in order."""
    return [frame.to_event() for frame in iter_frames(body)]
