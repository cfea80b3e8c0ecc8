from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass
class Notice:
    """Transient, user-visible message that is not part of the transcript."""

    level: NoticeLevel
    text: str
    timestamp: datetime = field(default_factory=datetime.now)


NoticeHandler = Callable[[Notice], None]
