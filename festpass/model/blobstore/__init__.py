import os
from typing import Optional
import httpx

BACKEND = os.getenv("BLOBSTORE_BACKEND", "appwrite").lower()  # 'appwrite' | 'local'

if BACKEND == "local":
    from ._local import BlobStore as _BlobStore
else:
    from ._appwrite import BlobStore as _BlobStore


def new_store(*, http: Optional[httpx.AsyncClient] = None):
    if BACKEND == "local":
        return _BlobStore()
    if http is None:
        raise RuntimeError(
            "BlobStore(appwrite) requires http=httpx.AsyncClient"
        )
    return _BlobStore(http)


BlobStore = _BlobStore
__all__ = ["BlobStore", "new_store", "BACKEND"]
