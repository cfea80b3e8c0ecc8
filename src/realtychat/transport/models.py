from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EntityReference(BaseModel):
    """A structured record attached to a message through an @mention."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Backend id of the entity")
    type: str = Field(default="property", description="Entity kind")
    title: str | None = Field(default=None, description="Display name used in the mention")


class HistoryEntry(BaseModel):
    """Prior message sent as context. Only role and text reach the model."""

    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class ChatRequest(BaseModel):
    """Everything the backend needs to answer one message."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(description="User text, tone prefix included")
    history: list[HistoryEntry] = Field(default_factory=list, description="Trailing context window")
    session_id: str = Field(alias="sessionId")
    tone: str = Field(default="neutral")
    response_length: str = Field(default="medium", alias="responseLength")
    creativity: str = Field(default="balanced")
    temperature: float = Field(default=0.7)
    top_p: float = Field(default=0.9, alias="topP")
    top_k: int = Field(default=40, alias="topK")
    max_tokens: int = Field(default=2048, alias="maxTokens")
    stream: bool = Field(default=True)
    mentions: list[EntityReference] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        if not payload["mentions"]:
            del payload["mentions"]
        return payload


class ChatResult(BaseModel):
    """Completed assistant response."""

    model_config = ConfigDict(frozen=True)

    response: str = Field(description="Final assistant text")
    session_id: str = Field(description="Session id the server used")
    streamed: bool = Field(default=False)


class StreamEventType(str, Enum):
    """Record types in a streaming body."""

    CHUNK = "chunk"
    DONE = "done"
    ERROR = "error"


class StreamEvent(BaseModel):
    """One decoded `data:` record."""

    model_config = ConfigDict(frozen=True)

    type: StreamEventType
    content: str | None = Field(default=None, description="Fragment for chunk, final text for done")
    session_id: str | None = Field(default=None)
    message: str | None = Field(default=None, description="Error message for error records")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "StreamEvent | None":
        """Build an event from a parsed record, or None for unknown types."""
        try:
            event_type = StreamEventType(payload.get("type"))
        except ValueError:
            return None

        if event_type == StreamEventType.CHUNK:
            text = payload.get("content", payload.get("text", payload.get("chunk", "")))
        elif event_type == StreamEventType.DONE:
            text = payload.get("response", payload.get("content", payload.get("fullResponse")))
        else:
            text = None

        return cls(
            type=event_type,
            content=text if isinstance(text, str) else None,
            session_id=payload.get("sessionId"),
            message=payload.get("message") or payload.get("error"),
        )
