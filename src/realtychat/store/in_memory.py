"""In-memory local state backend.

Simple dict-based storage. Data is lost when the process exits.
"""

from .base import LocalStore


class InMemoryLocalStore(LocalStore):
    """In-memory key-value store (process lifetime only).

    Suitable for one-off scripts or testing.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    @property
    def backend_type(self) -> str:
        return "memory"
