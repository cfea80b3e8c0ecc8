"""Transcript persistence: /chat-history/session/{id}."""

import logging

from ..conversation import Message
from ..transport import ApiClient, invalid_response
from .models import SessionTranscript

logger = logging.getLogger(__name__)

MAX_SESSION_NAME = 80


class HistoryResource:
    def __init__(self, api: ApiClient):
        self._api = api

    async def load(self, session_id: str) -> SessionTranscript:
        """Fetch a session's transcript. An unknown session yields an empty one."""
        path = f"/chat-history/session/{session_id}"
        data = await self._api.request_json("GET", path)
        with invalid_response(path):
            body = data.get("data") or {}
            body.setdefault("sessionId", session_id)
            transcript = SessionTranscript.model_validate(body)
        logger.debug("Loaded %d messages for %s", len(transcript.messages), session_id)
        return transcript

    async def save(
        self,
        session_id: str,
        messages: list[Message] | None = None,
        name: str | None = None,
    ) -> None:
        """Persist the transcript and/or display name of a session.

        Raises:
            ValueError: If neither messages nor name is given
        """
        if messages is None and name is None:
            raise ValueError("Nothing to update. Provide messages or name.")

        body: dict = {}
        if messages is not None:
            body["messages"] = [m.to_wire() for m in messages if not m.is_streaming]
            body["totalMessages"] = len(body["messages"])
        if name is not None:
            body["name"] = name.strip()[:MAX_SESSION_NAME]
        await self._api.request_json("PUT", f"/chat-history/session/{session_id}", json=body)

    async def clear(self, session_id: str) -> None:
        await self._api.request_json("DELETE", f"/chat-history/session/{session_id}/clear")
