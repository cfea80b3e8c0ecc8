"""Ordered, in-memory transcript with a single streaming slot.

The store is append-only from the caller's point of view. The one
exception is the pending slot opened by begin_stream(): while a
response streams in, update_last() mutates that slot, and
finish_stream() replaces it wholesale with the completed message.
"""

import logging
from collections.abc import Callable, Iterable

from .models import Message, MessageFilter, Role, welcome_message

logger = logging.getLogger(__name__)

Listener = Callable[[list[Message]], None]


class ConversationStore:
    """Single source of truth for the visible transcript.

    Invariants:
    - at most one message has is_streaming set, and it is the last one
    - clear() always leaves exactly one welcome message
    """

    def __init__(self, messages: Iterable[Message] | None = None):
        self._messages: list[Message] = list(messages) if messages else [welcome_message()]
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __iter__(self):
        return iter(list(self._messages))

    @property
    def messages(self) -> list[Message]:
        """Snapshot copy of the transcript."""
        return list(self._messages)

    @property
    def streaming(self) -> Message | None:
        """The pending streaming message, if one is open."""
        if self._messages and self._messages[-1].is_streaming:
            return self._messages[-1]
        return None

    def subscribe(self, listener: Listener) -> None:
        """Register a callback invoked with a snapshot after every change."""
        self._listeners.append(listener)

    def _changed(self) -> None:
        snapshot = self.messages
        for listener in self._listeners:
            listener(snapshot)

    def append(self, message: Message) -> None:
        """Append a completed message.

        Raises:
            ValueError: If a streaming message is still open or the new
                message is itself flagged as streaming.
        """
        if self.streaming is not None:
            raise ValueError("Cannot append while a message is streaming")
        if message.is_streaming:
            raise ValueError("Use begin_stream() to open a streaming message")
        self._messages.append(message)
        self._changed()

    def begin_stream(self) -> Message:
        """Open the pending assistant slot and return it."""
        if self.streaming is not None:
            raise ValueError("A message is already streaming")
        pending = Message(role=Role.ASSISTANT, content="", is_streaming=True)
        self._messages.append(pending)
        self._changed()
        return pending

    def update_last(self, **changes) -> Message:
        """Apply field changes to the streaming message.

        Raises:
            ValueError: If no message is streaming.
        """
        current = self.streaming
        if current is None:
            raise ValueError("update_last() only applies to a streaming message")
        updated = current.model_copy(update=changes)
        updated.is_streaming = True
        self._messages[-1] = updated
        self._changed()
        return updated

    def finish_stream(self, final_text: str) -> Message:
        """Replace the pending slot with the completed message."""
        current = self.streaming
        if current is None:
            raise ValueError("No message is streaming")
        done = Message(role=Role.ASSISTANT, content=final_text, timestamp=current.timestamp)
        self._messages[-1] = done
        self._changed()
        return done

    def discard_stream(self) -> None:
        """Drop the pending slot (used when a stream is aborted or fails)."""
        if self.streaming is not None:
            self._messages.pop()
            self._changed()

    def remove(self, index: int) -> Message:
        """Remove one message (retry drops the error entry it replaces)."""
        if self.streaming is not None:
            raise ValueError("Cannot remove while a message is streaming")
        removed = self._messages.pop(index)
        self._changed()
        return removed

    def replace_all(self, messages: Iterable[Message]) -> None:
        """Load a transcript returned by the backend, keeping its order.

        The welcome message is prepended when the server copy does not
        already start with it. Streaming flags from persisted data are dropped.
        """
        loaded = [m.model_copy(update={"is_streaming": None}) for m in messages]
        welcome = welcome_message()
        if not loaded or loaded[0].content != welcome.content:
            loaded.insert(0, welcome)
        self._messages = loaded
        logger.debug("Loaded %d messages into transcript", len(loaded))
        self._changed()

    def clear(self) -> None:
        """Reset to a single fresh welcome message."""
        self._messages = [welcome_message()]
        self._changed()

    def history_window(self, size: int) -> list[Message]:
        """Trailing context sent with a request.

        Placeholders, errors and an open stream never reach the model.
        """
        if size <= 0:
            return []
        eligible = [
            m for m in self._messages
            if not (m.is_restricted or m.is_error or m.is_streaming)
        ]
        return eligible[-size:]

    def count(self, role: Role | None = None) -> int:
        if role is None:
            return len(self._messages)
        return sum(1 for m in self._messages if m.role == role)

    def search(self, query: str) -> list[tuple[int, Message]]:
        """Case-insensitive substring search, returning (index, message) pairs."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            (i, m) for i, m in enumerate(self._messages)
            if needle in m.content.lower()
        ]

    def filter(
        self,
        kind: MessageFilter,
        bookmarked: set[int] | None = None
    ) -> list[tuple[int, Message]]:
        """Filter the transcript by author or bookmark state."""
        indexed = list(enumerate(self._messages))
        if kind == MessageFilter.USER:
            return [(i, m) for i, m in indexed if m.role == Role.USER]
        if kind == MessageFilter.ASSISTANT:
            return [(i, m) for i, m in indexed if m.role == Role.ASSISTANT]
        if kind == MessageFilter.BOOKMARKED:
            marks = bookmarked or set()
            return [(i, m) for i, m in indexed if i in marks]
        return indexed
