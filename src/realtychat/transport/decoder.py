"""Decoder for newline-delimited `data: <json>` streaming bodies.

Bytes arrive in arbitrary pieces: a record, or even a UTF-8 code point,
may be split across reads. The decoder buffers until a newline and
only then parses. Lines without the event marker are ignored and
records that fail to parse are skipped, so one corrupt line never ends
the stream.
"""

import codecs
import inspect
import json
import logging
from collections.abc import AsyncIterable, Awaitable, Callable
from dataclasses import dataclass

from ..errors import TransportError
from .models import StreamEvent, StreamEventType

logger = logging.getLogger(__name__)

EVENT_MARKER = "data:"

ChunkCallback = Callable[[str, str], Awaitable[None] | None]


class StreamDecoder:
    """Incremental bytes -> StreamEvent decoder."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self.skipped = 0

    def feed(self, data: bytes) -> list[StreamEvent]:
        """Consume a piece of the body and return the complete events in it."""
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def finish(self) -> list[StreamEvent]:
        """Flush whatever is left once the body has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._parse_lines([remainder])

    def _parse_lines(self, lines: list[str]) -> list[StreamEvent]:
        events = []
        for raw in lines:
            line = raw.strip()
            if not line.startswith(EVENT_MARKER):
                continue
            body = line[len(EVENT_MARKER):].strip()
            if not body or body == "[DONE]":
                continue
            try:
                payload = json.loads(body)
            except json.JSONDecodeError:
                self.skipped += 1
                logger.debug("Skipping unparseable stream record: %.80s", body)
                continue
            if not isinstance(payload, dict):
                self.skipped += 1
                continue
            event = StreamEvent.from_payload(payload)
            if event is not None:
                events.append(event)
        return events


@dataclass
class StreamOutcome:
    """Final state of a decoded stream."""

    text: str = ""
    session_id: str | None = None
    completed: bool = False
    received_done: bool = False
    chunks: int = 0


async def decode_stream(
    body: AsyncIterable[bytes],
    on_chunk: ChunkCallback | None = None,
    on_complete: Callable[[StreamOutcome], None] | None = None,
) -> StreamOutcome:
    """Reduce a streaming body to its final text.

    Chunks are applied in arrival order. A done record replaces the
    accumulated text with the server's final text. An error record raises
    immediately. on_complete fires exactly once, on success only.

    Args:
        body: Async iterable of raw body bytes
        on_chunk: Called with (fragment, accumulated_text) per chunk; may be async
        on_complete: Called once with the outcome when the stream completes

    Raises:
        TransportError: kind "stream" when the server sends an error record
    """
    decoder = StreamDecoder()
    outcome = StreamOutcome()

    async def apply(event: StreamEvent) -> bool:
        if event.type == StreamEventType.CHUNK:
            fragment = event.content or ""
            outcome.text += fragment
            outcome.chunks += 1
            if on_chunk is not None:
                result = on_chunk(fragment, outcome.text)
                if inspect.isawaitable(result):
                    await result
            return False
        if event.type == StreamEventType.DONE:
            # Server text is authoritative even when it differs from the chunks
            if event.content is not None:
                outcome.text = event.content
            outcome.session_id = event.session_id
            outcome.received_done = True
            return True
        raise TransportError("stream", event.message or "Stream error")

    finished = False
    async for data in body:
        for event in decoder.feed(data):
            if await apply(event):
                finished = True
                break
        if finished:
            break

    if not finished:
        for event in decoder.finish():
            if await apply(event):
                break

    outcome.completed = True
    if on_complete is not None:
        on_complete(outcome)
    return outcome
