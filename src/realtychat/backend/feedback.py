"""Bookmarks and ratings."""

from ..conversation import Message
from ..transport import ApiClient, invalid_response
from .models import Bookmark, Rating, RatingValue


class BookmarkResource:
    def __init__(self, api: ApiClient):
        self._api = api

    async def add(self, session_id: str, index: int, message: Message) -> Bookmark:
        bookmark = Bookmark(
            key=Bookmark.make_key(session_id, index, message.timestamp),
            session_id=session_id,
            message_index=index,
            message_timestamp=message.timestamp,
            content=message.content,
            role=message.role.value,
        )
        await self._api.request_json(
            "POST", "/bookmark", json=bookmark.model_dump(mode="json", by_alias=True)
        )
        return bookmark

    async def remove(self, bookmark: Bookmark) -> None:
        await self._api.request_json(
            "DELETE",
            "/bookmark",
            json={
                "key": bookmark.key,
                "sessionId": bookmark.session_id,
                "messageIndex": bookmark.message_index,
                "messageTimestamp": bookmark.message_timestamp,
            },
        )


class RatingResource:
    def __init__(self, api: ApiClient):
        self._api = api

    async def rate(
        self,
        session_id: str,
        index: int,
        message: Message,
        value: RatingValue,
        reason: str | None = None,
    ) -> Rating:
        rating = Rating(
            session_id=session_id,
            message_index=index,
            message_timestamp=message.timestamp,
            rating=value,
            reason=reason.strip() if reason and reason.strip() else None,
            message_content=message.content,
            message_role=message.role.value,
        )
        await self._api.request_json(
            "POST", "/rate",
            json=rating.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return rating

    async def for_session(self, session_id: str) -> dict[str, RatingValue]:
        """Ratings of one session keyed like the local cache."""
        path = f"/ratings/{session_id}"
        data = await self._api.request_json("GET", path)
        ratings = data.get("ratings") or {}
        with invalid_response(path):
            if isinstance(ratings, list):
                return {
                    Rating.model_validate(r).cache_key: RatingValue(r["rating"])
                    for r in ratings
                }
            return {key: RatingValue(value) for key, value in ratings.items()}

    async def list_all(self) -> list[Rating]:
        """Administrative view of every rating."""
        data = await self._api.request_json("GET", "/ratings-all")
        with invalid_response("/ratings-all"):
            return [Rating.model_validate(r) for r in data.get("ratings") or []]

    async def delete(self, rating_id: str) -> None:
        await self._api.request_json("DELETE", f"/rating/{rating_id}")
