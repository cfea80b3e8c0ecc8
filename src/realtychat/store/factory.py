"""Factory for creating local state backends."""

from typing import Any

from .base import LocalStore


def create_local_store(
    backend: str = "sqlite",
    **kwargs: Any
) -> LocalStore:
    """Create a local state backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For sqlite:
                - path: str | Path (default: ~/.realtychat/state.db)
            For memory:
                - initial: dict[str, str] | None

    Returns:
        LocalStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryLocalStore
        return InMemoryLocalStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteLocalStore
        return SQLiteLocalStore(**kwargs)

    raise ValueError(
        f"Unsupported state backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
