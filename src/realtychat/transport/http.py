"""Shared aiohttp plumbing for every backend client.

Hidden design decisions:
- aiohttp session creation and ownership
- URL joining against the API base
- Authentication headers
- Mapping of non-2xx responses to error messages
- Mapping of unparseable payloads to BackendError
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import aiohttp

from ..errors import BackendError

logger = logging.getLogger(__name__)


@contextmanager
def invalid_response(path: str) -> Iterator[None]:
    """Report a 2xx body that does not fit the expected models as a BackendError."""
    try:
        yield
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise BackendError(f"Invalid response from {path}: {e}") from e


async def error_message(response: aiohttp.ClientResponse) -> tuple[str, dict]:
    """Extract the server-supplied message of a failed response.

    Returns the message and the decoded JSON body (empty if none).
    """
    body: dict = {}
    try:
        data = await response.json(content_type=None)
        if isinstance(data, dict):
            body = data
    except (aiohttp.ContentTypeError, ValueError):
        pass
    message = body.get("message") if isinstance(body.get("message"), str) else None
    return message or f"HTTP error! status: {response.status}", body


class ApiClient:
    """Owns one aiohttp session bound to the backend base URL.

    Supports async context manager protocol for cleanup:
        async with ApiClient(base_url) as api:
            data = await api.request_json("GET", "/rate-limit-status")
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        timeout: float = 120.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def authenticated(self) -> bool:
        return bool(self._auth_token)

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self.headers(),
            )
            self._owns_session = True
        return self._session

    async def request_json(
        self,
        method: str,
        path: str,
        **kwargs: Any
    ) -> dict[str, Any]:
        """Issue a request and return the decoded JSON object.

        Raises:
            BackendError: On non-2xx status, network failure or a non-JSON body
        """
        try:
            async with self.session.request(method, self.url(path), **kwargs) as response:
                if response.status >= 400:
                    message, _ = await error_message(response)
                    raise BackendError(message, status=response.status)
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise BackendError(f"Invalid JSON from {path}: {e}", status=response.status)
        except asyncio.TimeoutError:
            raise BackendError(f"Request to {path} timed out")
        except aiohttp.ClientError as e:
            raise BackendError(f"Network error calling {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise BackendError(f"Unexpected response shape from {path}", status=response.status)
        if data.get("success") is False:
            raise BackendError(data.get("message") or f"Request to {path} failed", status=response.status)
        return data

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close on exit.

        Suppresses "Event loop is closed" raised by late connector cleanup.
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
