"""Exception hierarchy for realtychat.

Every failure a caller can act on is a subclass of RealtyChatError.
Retry is always manual; is_retryable() only tells the front end whether
offering a retry action makes sense.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ratelimit.models import RateLimitInfo


class RealtyChatError(Exception):
    """Base class for realtychat errors."""

    def is_retryable(self) -> bool:
        """Override in subclasses to control whether a retry is offered."""
        return False


class ValidationError(RealtyChatError):
    """Input rejected before any network call (empty, too long, too many messages)."""

    def __init__(self, message: str):
        super().__init__(message)


class QuotaExceededError(RealtyChatError):
    """The local rate governor denied a send."""

    def __init__(self, info: "RateLimitInfo"):
        super().__init__(
            f"Prompt quota exhausted for role '{info.role.value}'. "
            f"Please sign in or wait for the window to reset."
        )
        self.info = info


class TransportError(RealtyChatError):
    """A chat request failed in transit.

    kind is one of "http", "network", "malformed" or "stream".
    """

    def __init__(
        self,
        kind: str,
        message: str,
        status: int | None = None,
        details: dict | None = None
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.details = details or {}

    def is_retryable(self) -> bool:
        return self.kind in ("network", "http", "stream") and self.status != 429


class RequestAborted(RealtyChatError):
    """The in-flight request was cancelled by the caller or superseded."""

    def __init__(self, message: str = "Request aborted"):
        super().__init__(message)


class BackendError(RealtyChatError):
    """A secondary backend call (history, bookmarks, ratings, reports, uploads) failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def is_retryable(self) -> bool:
        return self.status is None or self.status >= 500
