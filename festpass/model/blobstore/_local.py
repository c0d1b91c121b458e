from __future__ import annotations
import asyncio
import os
import uuid

from ...errors import StoreError

BLOB_DIR = os.environ.get("BLOB_DIR", "./passes")


class BlobStore:
    def __init__(self, directory: str = BLOB_DIR) -> None:
        self.directory = directory

    def _write(self, name: str, data: bytes) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(os.path.join(self.directory, name), "wb") as f:
            f.write(data)

    async def upload(self, data: bytes, filename: str,
                     content_type: str = "image/png") -> str:
        base = os.path.basename(filename).replace(" ", "_") or "blob"
        name = f"{uuid.uuid4().hex}-{base}"
        try:
            await asyncio.to_thread(self._write, name, data)
        except OSError as e:
            raise StoreError(f"upload file failed: {e}") from e
        return name
