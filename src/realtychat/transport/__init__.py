"""Transport layer: HTTP access to the chat backend.

Hides aiohttp session handling, the buffered and streaming response
formats, and single-flight cancellation.
"""

from .client import ChatTransport
from .decoder import StreamDecoder, StreamOutcome, decode_stream
from .http import ApiClient, invalid_response
from .models import (
    ChatRequest,
    ChatResult,
    EntityReference,
    HistoryEntry,
    StreamEvent,
    StreamEventType,
)

__all__ = [
    "ApiClient",
    "ChatRequest",
    "ChatResult",
    "ChatTransport",
    "EntityReference",
    "HistoryEntry",
    "StreamDecoder",
    "StreamEvent",
    "StreamEventType",
    "StreamOutcome",
    "decode_stream",
    "invalid_response",
]
