"""Conversation store: the in-memory transcript of one chat session."""

from .models import WELCOME_MESSAGE, Message, MessageFilter, Role, welcome_message
from .store import ConversationStore

__all__ = [
    "ConversationStore",
    "Message",
    "MessageFilter",
    "Role",
    "WELCOME_MESSAGE",
    "welcome_message",
]
