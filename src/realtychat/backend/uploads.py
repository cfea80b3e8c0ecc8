"""Multipart uploads returning hosted URLs."""

import mimetypes
from pathlib import Path

import aiohttp

from ..errors import BackendError
from ..transport import ApiClient
from .models import UploadKind


class UploadResource:
    def __init__(self, api: ApiClient):
        self._api = api

    async def upload(self, kind: UploadKind | str, path: str | Path) -> str:
        """Upload a file and return its hosted URL.

        Raises:
            ValueError: If kind is not a known upload kind
            FileNotFoundError: If path does not exist
            BackendError: If the server rejects the upload or returns no URL
        """
        kind = UploadKind(kind)
        file_path = Path(path)
        content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"

        form = aiohttp.FormData()
        form.add_field(
            kind.value,
            file_path.read_bytes(),
            filename=file_path.name,
            content_type=content_type,
        )
        data = await self._api.request_json("POST", f"/upload/{kind.value}", data=form)
        url = data.get("url") or data.get("fileUrl") or data.get(f"{kind.value}Url")
        if not isinstance(url, str) or not url:
            raise BackendError("Upload succeeded but no URL was returned")
        return url
