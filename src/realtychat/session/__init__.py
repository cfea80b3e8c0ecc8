"""Session identity: the durable token correlating one conversation."""

from .identity import SessionIdentity, new_session_token

__all__ = ["SessionIdentity", "new_session_token"]
