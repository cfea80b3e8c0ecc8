"""Data models for the transcript.

Messages serialise with the backend's camelCase field names so a
transcript can be sent to and loaded from the history endpoints as-is.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

WELCOME_MESSAGE = (
    "Hello! I'm your AI assistant. How can I help you with your "
    "real estate needs today?"
)

RESTRICTED_PLACEHOLDER = "This message was blocked because it may violate our content policy."


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class MessageFilter(str, Enum):
    """Transcript view filters."""

    ALL = "all"
    USER = "user"
    ASSISTANT = "assistant"
    BOOKMARKED = "bookmarked"


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


class Message(BaseModel):
    """One entry in the transcript."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    role: Role = Field(description="Who wrote the message")
    content: str = Field(default="", description="Message text, empty while a stream starts")
    timestamp: str = Field(default_factory=_now_iso, description="ISO-8601 creation time")
    is_streaming: bool | None = Field(default=None, alias="isStreaming")
    is_restricted: bool | None = Field(default=None, alias="isRestricted")
    flagged_reason: str | None = Field(default=None, alias="flaggedReason")
    is_error: bool | None = Field(default=None, alias="isError")
    original_user_message: str | None = Field(default=None, alias="originalUserMessage")
    attachments: list[str] | None = Field(default=None, description="Hosted upload URLs")

    @classmethod
    def user(cls, content: str, attachments: list[str] | None = None) -> "Message":
        return cls(role=Role.USER, content=content, attachments=attachments or None)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def restricted(cls, reason: str) -> "Message":
        """Placeholder for blocked input. The original text is never stored."""
        return cls(
            role=Role.USER,
            content=RESTRICTED_PLACEHOLDER,
            is_restricted=True,
            flagged_reason=reason,
        )

    @classmethod
    def error(cls, cause: str, original_user_message: str) -> "Message":
        return cls(
            role=Role.ASSISTANT,
            content=cause,
            is_error=True,
            original_user_message=original_user_message,
        )

    def to_wire(self) -> dict:
        """Serialise with backend field names, omitting unset flags."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def welcome_message() -> Message:
    return Message.assistant(WELCOME_MESSAGE)
