import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CallerRole(str, Enum):
    """Quota tier of the caller."""

    PUBLIC = "public"
    USER = "user"
    ADMIN = "admin"
    ROOTADMIN = "rootadmin"

    @classmethod
    def parse(cls, value: str | None) -> "CallerRole":
        """Map a backend role string to a tier, defaulting to public."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.PUBLIC


class RolePolicy(BaseModel):
    """Quota policy for one tier. max_prompts None means unlimited."""

    model_config = ConfigDict(frozen=True)

    max_prompts: int | None
    window_ms: int


DEFAULT_LIMITS: dict[CallerRole, RolePolicy] = {
    CallerRole.PUBLIC: RolePolicy(max_prompts=5, window_ms=15 * 60 * 1000),
    CallerRole.USER: RolePolicy(max_prompts=50, window_ms=60 * 60 * 1000),
    CallerRole.ADMIN: RolePolicy(max_prompts=500, window_ms=24 * 60 * 60 * 1000),
    CallerRole.ROOTADMIN: RolePolicy(max_prompts=None, window_ms=0),
}


def _unbounded(value: Any) -> int | None:
    """Normalise the backend's encodings of 'no limit' to None."""
    if value is None:
        return None
    if isinstance(value, str):
        if value.lower() in ("unlimited", "infinity", "inf"):
            return None
        return int(value)
    if isinstance(value, float):
        if math.isinf(value) or math.isnan(value):
            return None
        return int(value)
    return int(value)


class RateLimitInfo(BaseModel):
    """Cached mirror of the server's quota state for this caller."""

    model_config = ConfigDict(populate_by_name=True)

    role: CallerRole = Field(default=CallerRole.PUBLIC)
    limit: int | None = Field(default=None, description="Prompts per window; None is unlimited")
    remaining: int | None = Field(default=None, description="Prompts left; None is unlimited")
    window_ms: int = Field(default=0, alias="windowMs")
    reset_time: str | None = Field(default=None, alias="resetTime")

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, value: Any) -> CallerRole:
        if isinstance(value, CallerRole):
            return value
        return CallerRole.parse(value)

    @field_validator("limit", "remaining", mode="before")
    @classmethod
    def _parse_unbounded(cls, value: Any) -> int | None:
        return _unbounded(value)

    @property
    def unlimited(self) -> bool:
        return self.role == CallerRole.ROOTADMIN or self.remaining is None

    @classmethod
    def default_for(cls, role: CallerRole) -> "RateLimitInfo":
        """Fresh-window quota for a tier, used when the backend is unreachable."""
        policy = DEFAULT_LIMITS[role]
        return cls(
            role=role,
            limit=policy.max_prompts,
            remaining=policy.max_prompts,
            window_ms=policy.window_ms,
        )
