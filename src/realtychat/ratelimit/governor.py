"""Rate governor.

Holds the last quota snapshot reported by the backend and answers
"may the user send now?". A denial here only saves a doomed request
and lets the front end show a sign-in prompt.
"""

import logging
from collections.abc import Awaitable, Callable

from ..store import GLOBAL_NAMESPACE, LocalStore, scoped_key
from .models import CallerRole, RateLimitInfo

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[RateLimitInfo]]

# Anonymous usage is tracked per machine, not per account
_PROMPT_COUNT_KEY = scoped_key(GLOBAL_NAMESPACE, "prompt_count")


class RateGovernor:
    """Advisory quota gate.

    Args:
        fetch_status: Coroutine function returning the server's view
        role: Caller role known locally (from authentication)
        store: Local store for the anonymous prompt counter
    """

    def __init__(
        self,
        fetch_status: Fetcher,
        role: CallerRole = CallerRole.PUBLIC,
        store: LocalStore | None = None,
    ):
        self._fetch_status = fetch_status
        self._role = role
        self._store = store
        self._info = RateLimitInfo.default_for(role)
        self._prompt_count = 0

    @property
    def info(self) -> RateLimitInfo:
        return self._info

    @property
    def role(self) -> CallerRole:
        return self._role

    @property
    def prompt_count(self) -> int:
        """Prompts sent by an anonymous caller, persisted across runs."""
        return self._prompt_count

    async def load(self) -> None:
        """Restore the anonymous prompt counter from the local store."""
        if self._store is None:
            return
        if self._role != CallerRole.PUBLIC:
            # Signing in resets the anonymous allowance
            await self._store.delete(_PROMPT_COUNT_KEY)
            self._prompt_count = 0
            return
        raw = await self._store.get(_PROMPT_COUNT_KEY)
        self._prompt_count = int(raw) if raw and raw.isdigit() else 0
        self._info = self._fallback()

    def _fallback(self) -> RateLimitInfo:
        """Role default, less what an anonymous caller has already used."""
        info = RateLimitInfo.default_for(self._role)
        if self._role == CallerRole.PUBLIC and info.limit is not None:
            info = info.model_copy(update={"remaining": max(0, info.limit - self._prompt_count)})
        return info

    def check_allowed(self) -> bool:
        """Whether a send should be attempted.

        The top tier is always allowed whatever the counter says.
        """
        if self._role == CallerRole.ROOTADMIN or self._info.role == CallerRole.ROOTADMIN:
            return True
        remaining = self._info.remaining
        if remaining is None:
            return True
        return remaining > 0

    async def refresh(self) -> RateLimitInfo:
        """Re-read the quota from the backend.

        Never raises: on failure the role's default quota is used so the
        UI is not blocked by an unreachable status endpoint.
        """
        try:
            info = await self._fetch_status()
        except Exception as e:
            logger.warning("Rate limit refresh failed, using %s defaults: %s", self._role.value, e)
            info = self._fallback()
        self._info = info
        return info

    async def record_send(self) -> None:
        """Account for a successful send until the next refresh."""
        remaining = self._info.remaining
        if remaining is not None and self._info.role != CallerRole.ROOTADMIN:
            self._info = self._info.model_copy(update={"remaining": max(0, remaining - 1)})

        if self._role == CallerRole.PUBLIC:
            self._prompt_count += 1
            if self._store is not None:
                await self._store.set(
                    _PROMPT_COUNT_KEY,
                    str(self._prompt_count),
                )

    def update(self, info: RateLimitInfo) -> None:
        """Adopt quota information carried by another response (e.g. a 429 body)."""
        self._info = info
