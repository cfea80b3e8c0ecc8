"""UI modes.

The chat surface shows exactly one of these at a time. Opening a
mode replaces whatever was open before, so two overlays can never be
active together.
"""

from enum import Enum


class UiMode(str, Enum):
    CLOSED = "closed"
    CHAT = "chat"
    SETTINGS = "settings"
    HISTORY = "history"
    BOOKMARKS = "bookmarks"
    SIGN_IN_PROMPT = "sign_in_prompt"
    CONFIRM_CLEAR = "confirm_clear"
    REPORT = "report"
    ADMIN_REVIEW = "admin_review"


class ModeState:
    """Holds the single active mode."""

    def __init__(self, initial: UiMode = UiMode.CLOSED):
        self._current = initial
        self._previous: UiMode | None = None

    @property
    def current(self) -> UiMode:
        return self._current

    @property
    def is_open(self) -> bool:
        return self._current != UiMode.CLOSED

    def open(self, mode: UiMode) -> UiMode:
        """Switch to mode, returning the mode it replaced."""
        self._previous, self._current = self._current, mode
        return self._previous

    def back(self) -> UiMode:
        """Leave an overlay and return to the chat view."""
        if self._current not in (UiMode.CLOSED, UiMode.CHAT):
            self.open(UiMode.CHAT)
        return self._current

    def close(self) -> None:
        self.open(UiMode.CLOSED)
