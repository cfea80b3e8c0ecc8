"""Session identity.

Resolution order for get_or_create_session_id():
1. the id already cached in this process
2. the id persisted in the local store
3. a freshly generated token, persisted before it is returned
"""

import logging
from collections.abc import Awaitable, Callable

from uuid_extensions import uuid7

from ..store import LocalStore, scoped_key

logger = logging.getLogger(__name__)

SESSION_KEY = "session_id"
RATINGS_KEY = "ratings"

ResetHook = Callable[[str, str], Awaitable[None]]


def new_session_token() -> str:
    """Generate an opaque, time-ordered session token."""
    return f"session_{uuid7().hex}"


class SessionIdentity:
    """Owns the session id for one caller namespace.

    Reset hooks are awaited with (old_id, new_id) whenever reset() or
    adopt() changes the identity, so caches tied to the old session can
    be dropped.
    """

    def __init__(self, store: LocalStore, namespace: str = "global"):
        self._store = store
        self._namespace = namespace
        self._session_id: str | None = None
        self._reset_hooks: list[ResetHook] = []

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def current(self) -> str | None:
        """The cached id, without touching the store."""
        return self._session_id

    def _key(self, name: str) -> str:
        return scoped_key(self._namespace, name)

    def on_reset(self, hook: ResetHook) -> None:
        self._reset_hooks.append(hook)

    async def get_or_create_session_id(self) -> str:
        """Return the session id, creating and persisting one if needed."""
        if self._session_id:
            return self._session_id

        existing = await self._store.get(self._key(SESSION_KEY))
        if existing:
            self._session_id = existing
            return existing

        created = new_session_token()
        await self._store.set(self._key(SESSION_KEY), created)
        self._session_id = created
        logger.info("Created new chat session %s", created)
        return created

    async def adopt(self, session_id: str) -> None:
        """Switch to an id chosen elsewhere (server response, loaded history)."""
        old = self._session_id
        if session_id == old:
            return
        await self._store.set(self._key(SESSION_KEY), session_id)
        self._session_id = session_id
        if old is not None:
            await self._run_hooks(old, session_id)

    async def reset(self) -> str:
        """Invalidate the stored identity and start a new session.

        The per-session rating cache is cleared along with it.
        """
        old = self._session_id or await self._store.get(self._key(SESSION_KEY)) or ""
        await self._store.delete(self._key(SESSION_KEY))
        self._session_id = None

        created = new_session_token()
        while created == old:
            created = new_session_token()
        await self._store.set(self._key(SESSION_KEY), created)
        self._session_id = created

        await self._store.set_json(self._key(RATINGS_KEY), {})
        await self._run_hooks(old, created)
        logger.info("Reset chat session %s -> %s", old or "<none>", created)
        return created

    async def _run_hooks(self, old: str, new: str) -> None:
        for hook in self._reset_hooks:
            await hook(old, new)

    def _draft_key(self, session_id: str) -> str:
        return self._key(f"draft/{session_id}")

    async def save_draft(self, text: str) -> None:
        """Persist unsent input for the current session."""
        session_id = await self.get_or_create_session_id()
        if text:
            await self._store.set(self._draft_key(session_id), text)
        else:
            await self._store.delete(self._draft_key(session_id))

    async def load_draft(self) -> str:
        session_id = await self.get_or_create_session_id()
        return await self._store.get(self._draft_key(session_id)) or ""
