"""Abstract base class for local state backends.

This module defines the interface for client-side persisted state.
The abstraction hides:
- Storage format (dict, SQLite table)
- Persistence mechanism (in-memory, file)
- Connection management
"""

import json
from abc import ABC, abstractmethod
from typing import Any

GLOBAL_NAMESPACE = "global"


def namespace_for(user_id: str | None) -> str:
    """Derive the storage namespace for a caller.

    Authenticated callers get their own namespace so that two accounts
    sharing one machine never see each other's drafts or preferences.
    """
    if user_id:
        return f"user:{user_id}"
    return GLOBAL_NAMESPACE


def scoped_key(namespace: str, name: str) -> str:
    """Join a namespace and a key name."""
    return f"{namespace}/{name}"


class LocalStore(ABC):
    """Abstract local key-value store.

    Values are strings; get_json/set_json layer JSON on top.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store gracefully."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix, sorted."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def get_json(self, key: str, default: Any = None) -> Any:
        """Load a JSON value, returning default when absent or unreadable."""
        raw = await self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return default

    async def set_json(self, key: str, value: Any) -> None:
        """Store a JSON-serialisable value."""
        await self.set(key, json.dumps(value))

    async def __aenter__(self) -> "LocalStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
