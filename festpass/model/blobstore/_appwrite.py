from __future__ import annotations
from typing import Dict, Optional

import httpx

from ...infra.appwrite import (
    APPWRITE_ENDPOINT, APPWRITE_BUCKET_ID,
    appwrite_headers, raise_for_transport, checked_json,
)


class BlobStore:
    def __init__(
        self, http: httpx.AsyncClient, *,
        endpoint: str = APPWRITE_ENDPOINT,
        bucket_id: str = APPWRITE_BUCKET_ID,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.http = http
        self.url = f"{endpoint.rstrip('/')}/storage/buckets/{bucket_id}/files"
        self.headers = headers if headers is not None else appwrite_headers()

    async def upload(self, data: bytes, filename: str,
                     content_type: str = "image/png") -> str:
        try:
            resp = await self.http.post(
                self.url,
                data={"fileId": "unique()"},
                files={"file": (filename, data, content_type)},
                headers=self.headers,
            )
        except httpx.TransportError as e:
            raise_for_transport(e, "upload file")
        body = checked_json(resp, "upload file")
        return str(body.get("$id", ""))
