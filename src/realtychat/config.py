"""Configuration: process settings from the environment and per-user preferences.

Settings describe where the backend and local state live. Preferences
are the user's chat settings, stored per identity namespace.
"""

import logging
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .ratelimit import CallerRole
from .store import LocalStore, scoped_key

logger = logging.getLogger(__name__)

PREFERENCES_KEY = "preferences"

# Bounded local buffers
EVENT_LOG_CAPACITY = 100
MODERATION_QUEUE_SIZE = 100


class Settings(BaseModel):
    """Process-level configuration."""

    model_config = ConfigDict(frozen=True)

    api_base_url: str = Field(default="http://localhost:3000/api")
    state_backend: str = Field(default="sqlite", description="'sqlite' or 'memory'")
    state_path: Path = Field(default=Path("~/.realtychat/state.db"))
    auth_token: str | None = Field(default=None)
    user_id: str | None = Field(default=None)
    user_role: CallerRole = Field(default=CallerRole.PUBLIC)
    timeout: float = Field(default=120.0, gt=0)
    log_level: str = Field(default="WARNING")

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id and self.auth_token)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from REALTYCHAT_* environment variables.

        Environment variables:
            REALTYCHAT_API_BASE_URL: Backend API root (default: http://localhost:3000/api)
            REALTYCHAT_STATE_BACKEND: Local state backend (default: sqlite)
            REALTYCHAT_STATE_PATH: SQLite file (default: ~/.realtychat/state.db)
            REALTYCHAT_AUTH_TOKEN: Bearer token of the signed-in user
            REALTYCHAT_USER_ID: Id of the signed-in user
            REALTYCHAT_USER_ROLE: public, user, admin or rootadmin (default: public)
            REALTYCHAT_TIMEOUT: Request timeout in seconds (default: 120)
            REALTYCHAT_LOG_LEVEL: Logging level (default: WARNING)
        """
        user_id = os.getenv("REALTYCHAT_USER_ID") or None
        role = CallerRole.parse(os.getenv("REALTYCHAT_USER_ROLE"))
        if user_id is None:
            role = CallerRole.PUBLIC
        elif role == CallerRole.PUBLIC:
            role = CallerRole.USER
        return cls(
            api_base_url=os.getenv("REALTYCHAT_API_BASE_URL", "http://localhost:3000/api"),
            state_backend=os.getenv("REALTYCHAT_STATE_BACKEND", "sqlite"),
            state_path=Path(os.getenv("REALTYCHAT_STATE_PATH", "~/.realtychat/state.db")),
            auth_token=os.getenv("REALTYCHAT_AUTH_TOKEN") or None,
            user_id=user_id,
            user_role=role,
            timeout=float(os.getenv("REALTYCHAT_TIMEOUT", "120")),
            log_level=os.getenv("REALTYCHAT_LOG_LEVEL", "WARNING"),
        )


class Tone(str, Enum):
    NEUTRAL = "neutral"
    FRIENDLY = "friendly"
    FORMAL = "formal"
    CONCISE = "concise"
    DETAILED = "detailed"


class ResponseLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class Creativity(str, Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    CREATIVE = "creative"


class Preferences(BaseModel):
    """All user-adjustable chat settings in one place.

    Loaded once per identity namespace and passed to the controller.
    """

    model_config = ConfigDict(validate_assignment=True)

    # AI behaviour
    tone: Tone = Field(default=Tone.NEUTRAL, description="Style prefix added to outgoing text")
    response_length: ResponseLength = Field(default=ResponseLength.MEDIUM)
    creativity: Creativity = Field(default=Creativity.BALANCED)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    top_k: int = Field(default=40, ge=1, le=100)
    max_tokens: int = Field(default=2048, ge=1, le=8192)
    streaming: bool = Field(default=True, description="Request streamed responses")
    history_window: int = Field(default=10, ge=0, le=50, description="Prior messages sent as context")

    # Display and accessibility
    theme: str = Field(default="blue")
    dark_mode: bool = Field(default=False)
    font_size: str = Field(default="medium")
    high_contrast: bool = Field(default=False)
    reduced_motion: bool = Field(default=False)
    sound_enabled: bool = Field(default=False)
    enter_to_send: bool = Field(default=True)

    # Input limits
    max_message_length: int = Field(default=2000, ge=1)
    max_messages: int = Field(default=500, ge=2, description="Transcript size at which sending stops")

    @classmethod
    async def load(cls, store: LocalStore, namespace: str) -> "Preferences":
        """Load saved preferences, falling back to defaults for anything invalid."""
        raw = await store.get_json(scoped_key(namespace, PREFERENCES_KEY), default={})
        if not isinstance(raw, dict):
            return cls()
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring invalid saved preferences: %s", e)
            return cls()

    async def save(self, store: LocalStore, namespace: str) -> None:
        await store.set_json(scoped_key(namespace, PREFERENCES_KEY), self.model_dump(mode="json"))

    def with_value(self, name: str, value: object) -> "Preferences":
        """Copy with one field changed and validated.

        Raises:
            KeyError: Unknown preference
            pydantic.ValidationError: Value out of range or wrong type
        """
        if name not in type(self).model_fields:
            raise KeyError(name)
        data = self.model_dump()
        data[name] = value
        return type(self).model_validate(data)
