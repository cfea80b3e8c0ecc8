"""Provider factory functions for CLI.

Centralizes creation of settings, local state, and backend clients from
environment variables. Hides configuration details from command implementations.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from rich.console import Console
from rich.logging import RichHandler

from ..backend import BackendClient
from ..config import Settings
from ..controller import ChatController, Notice, NoticeLevel
from ..store import LocalStore, create_local_store
from ..transport import ChatTransport

# Default console for output
_console = Console()

_NOTICE_STYLES = {
    NoticeLevel.SUCCESS: "green",
    NoticeLevel.INFO: "cyan",
    NoticeLevel.ERROR: "red",
}


def configure_logging(level: str) -> None:
    """Route library logging through rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def get_settings() -> Settings:
    """Settings from REALTYCHAT_* environment variables."""
    return Settings.from_env()


def get_store(settings: Settings) -> LocalStore:
    if settings.state_backend == "sqlite":
        return create_local_store("sqlite", path=settings.state_path)
    return create_local_store(settings.state_backend)


def get_backend(settings: Settings) -> BackendClient:
    return BackendClient(
        settings.api_base_url,
        auth_token=settings.auth_token,
        timeout=settings.timeout,
    )


def get_transport(settings: Settings) -> ChatTransport:
    return ChatTransport(
        settings.api_base_url,
        auth_token=settings.auth_token,
        timeout=settings.timeout,
    )


def print_notice(notice: Notice, console: Console | None = None) -> None:
    con = console or _console
    style = _NOTICE_STYLES.get(notice.level, "white")
    con.print(f"[{style}]{notice.text}[/{style}]")


@asynccontextmanager
async def open_controller(
    settings: Settings,
    console: Console | None = None
) -> AsyncIterator[ChatController]:
    """Build, start and finally tear down a ChatController."""
    con = console or _console
    store = get_store(settings)
    backend = get_backend(settings)
    transport = get_transport(settings)
    await store.connect()
    controller = ChatController(
        settings,
        transport,
        backend,
        store,
        on_notice=lambda notice: print_notice(notice, con),
    )
    try:
        await controller.start()
        yield controller
    finally:
        await controller.close()
        await transport.close()
        await backend.close()
        await store.disconnect()


@asynccontextmanager
async def open_backend(settings: Settings) -> AsyncIterator[BackendClient]:
    backend = get_backend(settings)
    try:
        yield backend
    finally:
        await backend.close()
