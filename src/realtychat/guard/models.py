from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GuardRule(BaseModel):
    """One named category of the restricted-content table."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(description="Category name reported on a match")
    reason: str = Field(description="Human-readable reason shown to moderators")
    patterns: tuple[str, ...] = Field(description="Regular expressions, matched case-insensitively")


class GuardVerdict(BaseModel):
    """Result of classifying one piece of text."""

    model_config = ConfigDict(frozen=True)

    restricted: bool = Field(description="True when any rule matched")
    category: str | None = Field(default=None, description="First matching category")
    reason: str | None = Field(default=None, description="Reason attached to that category")


class ModerationReport(BaseModel):
    """System-initiated report carrying restricted text for human review."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(alias="messageContent", description="Raw text that was blocked")
    category: str = Field(description="Matched guard category")
    reason: str = Field(description="Guard reason")
    session_id: str | None = Field(default=None, alias="sessionId")
    message_index: int | None = Field(default=None, alias="messageIndex")
    reported_by: str = Field(default="system", alias="reportedBy")
    timestamp: datetime = Field(default_factory=datetime.now)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
