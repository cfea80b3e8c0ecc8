"""
realtychat: async client for the real-estate assistant chat backend.

Each subpackage hides one design decision: where local state lives,
how outbound text is screened, how responses travel over HTTP, and how
the client mirrors the server's quota.
"""

__version__ = "0.1.0"

from .config import Preferences, Settings
from .controller import AdminReview, ChatController, Notice, NoticeLevel, UiMode
from .conversation import ConversationStore, Message, Role
from .errors import (
    BackendError,
    QuotaExceededError,
    RealtyChatError,
    RequestAborted,
    TransportError,
    ValidationError,
)
from .guard import ContentGuard, GuardVerdict
from .ratelimit import CallerRole, RateGovernor, RateLimitInfo
from .session import SessionIdentity
from .store import LocalStore, create_local_store
from .transport import ChatRequest, ChatResult, ChatTransport, StreamDecoder, decode_stream

__all__ = [
    "AdminReview",
    "BackendError",
    "CallerRole",
    "ChatController",
    "ChatRequest",
    "ChatResult",
    "ChatTransport",
    "ContentGuard",
    "ConversationStore",
    "GuardVerdict",
    "LocalStore",
    "Message",
    "Notice",
    "NoticeLevel",
    "Preferences",
    "QuotaExceededError",
    "RateGovernor",
    "RateLimitInfo",
    "RealtyChatError",
    "RequestAborted",
    "Role",
    "SessionIdentity",
    "Settings",
    "StreamDecoder",
    "TransportError",
    "UiMode",
    "ValidationError",
    "create_local_store",
    "decode_stream",
]
