"""Streamed event model and the model streaming client."""

from .client import ModelStreamError, StreamingClient, ToolRoundsExceeded, to_langchain_messages
from .events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent

__all__ = [
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "TokenEvent",
    "StreamingClient",
    "ModelStreamError",
    "ToolRoundsExceeded",
    "to_langchain_messages",
]
