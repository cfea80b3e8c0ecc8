"""Data models for the secondary backend resources."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..conversation import Message


class SessionTranscript(BaseModel):
    """A session's persisted transcript as returned by the history endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: str = Field(alias="sessionId")
    name: str | None = Field(default=None, description="User-chosen display name")
    messages: list[Message] = Field(default_factory=list)
    total_messages: int = Field(default=0, alias="totalMessages")


class RatingValue(str, Enum):
    UP = "up"
    DOWN = "down"


class Rating(BaseModel):
    """Per-message feedback."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, alias="_id")
    session_id: str = Field(alias="sessionId")
    message_index: int = Field(alias="messageIndex")
    message_timestamp: str = Field(alias="messageTimestamp")
    rating: RatingValue
    reason: str | None = Field(default=None, description="Optional free-text reason")
    message_content: str | None = Field(default=None, alias="messageContent")
    message_role: str | None = Field(default=None, alias="messageRole")

    @property
    def cache_key(self) -> str:
        return rating_key(self.message_index, self.message_timestamp)


def rating_key(message_index: int, timestamp: str) -> str:
    """Key of a rating in the local per-session cache."""
    return f"{message_index}_{timestamp}"


class Bookmark(BaseModel):
    """A bookmarked message, keyed by session, index and timestamp."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key: str
    session_id: str = Field(alias="sessionId")
    message_index: int = Field(alias="messageIndex")
    message_timestamp: str = Field(alias="messageTimestamp")
    content: str = ""
    role: str = "assistant"

    @staticmethod
    def make_key(session_id: str, message_index: int, timestamp: str) -> str:
        return f"{session_id}_{message_index}_{timestamp}"


class ReportStatus(str, Enum):
    """Triage lifecycle: pending -> resolved | dismissed."""

    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

    def can_transition_to(self, target: "ReportStatus") -> bool:
        return self == ReportStatus.PENDING and target != ReportStatus.PENDING


class ContentReport(BaseModel):
    """A user- or system-initiated report of a chat message."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, alias="_id")
    message_content: str = Field(alias="messageContent")
    category: str | None = None
    reason: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    message_index: int | None = Field(default=None, alias="messageIndex")
    reported_by: str = Field(default="user", alias="reportedBy")
    status: ReportStatus = ReportStatus.PENDING
    admin_notes: str | None = Field(default=None, alias="adminNotes")


class UploadKind(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


class PropertySummary(BaseModel):
    """Entity returned by property search, used to resolve @mentions."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="_id")
    name: str = Field(default="")
    address: str | None = None
    city: str | None = None
    price: float | None = Field(default=None, alias="regularPrice")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PropertySummary":
        if "_id" not in payload and "id" in payload:
            payload = {**payload, "_id": payload["id"]}
        return cls.model_validate(payload)
