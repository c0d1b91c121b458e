import os
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import httpx

from ...infra.sql import Gated

BACKEND = os.getenv("PASSSTORE_BACKEND", "appwrite").lower()  # 'appwrite' | 'sql'

if BACKEND == "sql":
    from ._sql import PassStore as _PassStore
else:
    from ._appwrite import PassStore as _PassStore


# Factory keeps server.py simple and constructor-agnostic:
def new_store(*, db: Optional[AsyncSession] = None,
              http: Optional[httpx.AsyncClient] = None,
              gated: Gated = None):
    if BACKEND == "sql":
        if db is None:
            raise RuntimeError("PassStore(sql) requires db=AsyncSession")
        if gated is None:
            raise RuntimeError("PassStore(sql) requires gated=Gated")
        return _PassStore(db=db, gated=gated)
    else:
        if http is None:
            raise RuntimeError(
                "PassStore(appwrite) requires http=httpx.AsyncClient"
            )
        return _PassStore(http)


PassStore = _PassStore
__all__ = ["PassStore", "new_store", "BACKEND"]
