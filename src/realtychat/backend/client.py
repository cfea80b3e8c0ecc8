"""Aggregate client for the secondary backend resources."""

from typing import Any

from ..ratelimit import RateLimitInfo
from ..transport import ApiClient, invalid_response
from .feedback import BookmarkResource, RatingResource
from .history import HistoryResource
from .properties import PropertyResource
from .reports import ReportResource
from .uploads import UploadResource


class BackendClient(ApiClient):
    """One session, many resources.

    Usage:
        async with BackendClient(base_url, auth_token=token) as backend:
            transcript = await backend.history.load(session_id)
            info = await backend.rate_limit_status()
    """

    def __init__(self, base_url: str, **kwargs: Any):
        super().__init__(base_url, **kwargs)
        self.history = HistoryResource(self)
        self.bookmarks = BookmarkResource(self)
        self.ratings = RatingResource(self)
        self.reports = ReportResource(self)
        self.uploads = UploadResource(self)
        self.properties = PropertyResource(self)

    async def rate_limit_status(self) -> RateLimitInfo:
        """Current quota for the caller, as the backend sees it."""
        data = await self.request_json("GET", "/rate-limit-status")
        body = data.get("rateLimitInfo") or data.get("data") or data
        with invalid_response("/rate-limit-status"):
            return RateLimitInfo.model_validate(body)
