"""Content guard for outbound chat text.

Classifies text against an ordered rule table before it is sent
and queues moderation notifications for restricted input.
"""

from .classifier import ContentGuard
from .models import GuardRule, GuardVerdict, ModerationReport
from .reporter import ModerationReporter
from .rules import DEFAULT_RULES, keyword_pattern

__all__ = [
    "ContentGuard",
    "DEFAULT_RULES",
    "GuardRule",
    "GuardVerdict",
    "ModerationReport",
    "ModerationReporter",
    "keyword_pattern",
]
