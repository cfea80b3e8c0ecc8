"""Chat controller: runs the outbound message pipeline.

guard -> transcript -> transport -> stream decoder -> quota refresh.
"""

from .admin import AdminReview
from .chat import ChatController
from .modes import ModeState, UiMode
from .notices import Notice, NoticeLevel

__all__ = [
    "AdminReview",
    "ChatController",
    "ModeState",
    "Notice",
    "NoticeLevel",
    "UiMode",
]
