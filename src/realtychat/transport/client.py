"""Chat transport: POST /chat in buffered or streaming mode.

At most one request is in flight per transport. A new send() cancels
the previous one, and the superseded caller sees RequestAborted rather
than a transport error.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from ..errors import RequestAborted, TransportError
from .decoder import ChunkCallback, decode_stream
from .http import ApiClient, error_message
from .models import ChatRequest, ChatResult

logger = logging.getLogger(__name__)

CHAT_PATH = "/chat"


class ChatTransport(ApiClient):
    """Sends chat requests and returns completed results.

    Hidden design decisions:
    - Wire format of the request body
    - Buffered JSON vs newline-delimited event stream bodies
    - Single-flight cancellation
    - Mapping of aiohttp failures to TransportError kinds
    """

    def __init__(self, base_url: str, chat_path: str = CHAT_PATH, **kwargs: Any):
        super().__init__(base_url, **kwargs)
        self._chat_path = chat_path
        self._inflight: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def cancel(self) -> bool:
        """Abort the in-flight request, if any. Returns whether one was cancelled."""
        if self.in_flight:
            self._inflight.cancel()
            return True
        return False

    async def send(
        self,
        request: ChatRequest,
        on_chunk: ChunkCallback | None = None
    ) -> ChatResult:
        """Send a message and wait for the complete response.

        Args:
            request: Chat request; request.stream selects the response mode
            on_chunk: Called per streamed fragment with (fragment, accumulated)

        Returns:
            ChatResult with the server's final text

        Raises:
            TransportError: HTTP, network, malformed-body or stream errors
            RequestAborted: The request was cancelled or superseded
        """
        self.cancel()
        task = asyncio.ensure_future(self._perform(request, on_chunk))
        self._inflight = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and (current is None or current.cancelling() == 0):
                logger.debug("Chat request for %s aborted", request.session_id)
                raise RequestAborted() from None
            task.cancel()
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

    async def _perform(
        self,
        request: ChatRequest,
        on_chunk: ChunkCallback | None
    ) -> ChatResult:
        payload = request.to_payload()
        logger.debug(
            "POST %s session=%s stream=%s history=%d",
            self._chat_path, request.session_id, request.stream, len(request.history)
        )
        try:
            # The context manager releases the body on success, failure and cancel
            async with self.session.post(self.url(self._chat_path), json=payload) as response:
                if response.status >= 400:
                    message, body = await error_message(response)
                    raise TransportError("http", message, status=response.status, details=body)

                if request.stream and response.content_type != "application/json":
                    outcome = await decode_stream(response.content.iter_any(), on_chunk)
                    return ChatResult(
                        response=outcome.text,
                        session_id=outcome.session_id or request.session_id,
                        streamed=True,
                    )

                return await self._read_buffered(response, request.session_id)
        # aiohttp timeout errors are also ClientErrors
        except asyncio.TimeoutError as e:
            raise TransportError("network", "Request timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError("network", f"Network error: {e}") from e

    @staticmethod
    async def _read_buffered(response: aiohttp.ClientResponse, session_id: str) -> ChatResult:
        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            raise TransportError("malformed", "Invalid response structure from server") from e

        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise TransportError("malformed", "Invalid response structure from server")
        if data.get("success") is False:
            raise TransportError("http", data.get("message") or "Request failed", status=response.status)

        return ChatResult(
            response=data["response"].strip(),
            session_id=data.get("sessionId") or session_id,
            streamed=False,
        )
