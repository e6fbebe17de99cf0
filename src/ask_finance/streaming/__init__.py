"""Event streaming for ask-finance."""

from .emitter import StreamEmitter
from .sse import SSEFrame, decode_stream, encode_event, iter_frames

__all__ = [
    "StreamEmitter",
    "SSEFrame",
    "encode_event",
    "decode_stream",
    "iter_frames",
]
