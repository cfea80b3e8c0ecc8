"""Local state store for realtychat.

Provides durable key-value storage for session identity, drafts,
preferences and cached feedback.
"""

from .base import GLOBAL_NAMESPACE, LocalStore, namespace_for, scoped_key
from .factory import create_local_store

__all__ = [
    "GLOBAL_NAMESPACE",
    "LocalStore",
    "create_local_store",
    "namespace_for",
    "scoped_key",
]
