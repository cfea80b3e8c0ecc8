"""Default restricted-content table.

The keyword lists here are deliberately small; a deployment passes its
own policy table to ContentGuard. Table order is match priority.
"""

import re

from .models import GuardRule


def keyword_pattern(keyword: str) -> str:
    """Build a word-bounded pattern for a literal keyword or phrase.

    Inner whitespace matches any run of whitespace, so "kill  myself"
    still hits the "kill myself" phrase.
    """
    words = [re.escape(word) for word in keyword.split()]
    return r"\b" + r"\s+".join(words) + r"\b"


def _rule(category: str, reason: str, keywords: list[str]) -> GuardRule:
    return GuardRule(
        category=category,
        reason=reason,
        patterns=tuple(keyword_pattern(k) for k in keywords),
    )


DEFAULT_RULES: tuple[GuardRule, ...] = (
    _rule(
        "abusive_language",
        "Abusive or insulting language",
        ["idiot", "moron", "stupid bot", "shut up"],
    ),
    _rule(
        "hate_speech",
        "Hateful or dehumanising language",
        ["subhuman", "vermin people", "go back to your country"],
    ),
    _rule(
        "self_harm",
        "Possible self-harm indicator",
        ["kill myself", "end my life", "suicide"],
    ),
    _rule(
        "spam",
        "Spam or solicitation",
        ["buy now", "click here", "free money", "guaranteed returns"],
    ),
)
