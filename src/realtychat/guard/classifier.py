import re
from collections.abc import Iterable

from .models import GuardRule, GuardVerdict
from .rules import DEFAULT_RULES

_CLEAN = GuardVerdict(restricted=False)


class ContentGuard:
    """Synchronous first-match-wins classifier over an ordered rule table.

    Rules are compiled once. Categories are tried in table order and the
    first one with any matching pattern is reported; overlapping matches
    in later categories are ignored.
    """

    def __init__(self, rules: Iterable[GuardRule] | None = None):
        self._rules = tuple(DEFAULT_RULES if rules is None else rules)
        self._compiled: list[tuple[GuardRule, re.Pattern[str]]] = []
        for rule in self._rules:
            if not rule.patterns:
                continue
            combined = "|".join(f"(?:{p})" for p in rule.patterns)
            self._compiled.append((rule, re.compile(combined, re.IGNORECASE)))

    @property
    def categories(self) -> list[str]:
        """Category names in match priority order."""
        return [rule.category for rule in self._rules]

    def classify(self, text: str | None) -> GuardVerdict:
        """Classify text.

        Empty, None and whitespace-only input is never restricted.
        """
        if not text or not text.strip():
            return _CLEAN

        for rule, pattern in self._compiled:
            if pattern.search(text):
                return GuardVerdict(
                    restricted=True,
                    category=rule.category,
                    reason=rule.reason,
                )
        return _CLEAN
