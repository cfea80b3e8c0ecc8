"""Property lookup for @mention autocompletion."""

import re

from ..transport import ApiClient, EntityReference, invalid_response
from .models import PropertySummary

MENTION_PATTERN = re.compile(r"@([\w][\w\-]*)")


def extract_mentions(text: str) -> list[str]:
    """Return the @tokens in text, in order, without duplicates."""
    seen: list[str] = []
    for token in MENTION_PATTERN.findall(text):
        if token not in seen:
            seen.append(token)
    return seen


class PropertyResource:
    def __init__(self, api: ApiClient):
        self._api = api

    async def search(self, query: str, limit: int = 5) -> list[PropertySummary]:
        if not query.strip():
            return []
        data = await self._api.request_json(
            "GET", "/property-search/search", params={"q": query, "limit": str(limit)}
        )
        results = data.get("properties") or data.get("listings") or data.get("data") or []
        with invalid_response("/property-search/search"):
            return [PropertySummary.from_payload(item) for item in results][:limit]

    async def get(self, property_id: str) -> PropertySummary:
        path = f"/property-search/{property_id}"
        data = await self._api.request_json("GET", path)
        with invalid_response(path):
            return PropertySummary.from_payload(data.get("property") or data.get("data") or data)

    async def resolve_mentions(self, text: str) -> list[EntityReference]:
        """Resolve every @token in text to the best-matching property.

        Tokens with no match are left unresolved.
        """
        references = []
        for token in extract_mentions(text):
            matches = await self.search(token.replace("-", " "), limit=1)
            if matches:
                match = matches[0]
                references.append(EntityReference(id=match.id, type="property", title=match.name))
        return references
