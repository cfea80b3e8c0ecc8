"""Clients for the backend's secondary resources.

History, bookmarks, ratings, reports, uploads and property search all
share one aiohttp session through BackendClient.
"""

from .client import BackendClient
from .models import (
    Bookmark,
    ContentReport,
    PropertySummary,
    Rating,
    RatingValue,
    ReportStatus,
    SessionTranscript,
    UploadKind,
    rating_key,
)
from .properties import extract_mentions

__all__ = [
    "BackendClient",
    "Bookmark",
    "ContentReport",
    "PropertySummary",
    "Rating",
    "RatingValue",
    "ReportStatus",
    "SessionTranscript",
    "UploadKind",
    "extract_mentions",
    "rating_key",
]
