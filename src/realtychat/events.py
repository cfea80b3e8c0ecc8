"""Bounded, persisted event logs (analytics and client-side errors).

Each log keeps only its newest entries; older ones fall off the front.
"""

from collections import deque
from datetime import datetime
from typing import Any

from .store import LocalStore, scoped_key


class EventLog:
    """Ring buffer of JSON events stored under one key."""

    def __init__(
        self,
        store: LocalStore,
        namespace: str,
        name: str,
        capacity: int = 100
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._store = store
        self._key = scoped_key(namespace, f"events/{name}")
        self._entries: deque[dict[str, Any]] = deque(maxlen=capacity)
        self._loaded = False

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        saved = await self._store.get_json(self._key, default=[])
        if isinstance(saved, list):
            self._entries.extend(e for e in saved if isinstance(e, dict))
        self._loaded = True

    async def record(self, event: str, **data: Any) -> None:
        await self._ensure_loaded()
        self._entries.append({
            "event": event,
            "timestamp": datetime.now().isoformat(),
            **data,
        })
        await self._store.set_json(self._key, list(self._entries))

    async def entries(self) -> list[dict[str, Any]]:
        await self._ensure_loaded()
        return list(self._entries)

    async def clear(self) -> None:
        self._entries.clear()
        self._loaded = True
        await self._store.delete(self._key)
