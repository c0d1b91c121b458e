# festpass/infra/appwrite.py
from __future__ import annotations
import os
from typing import Any, Dict, NoReturn

import httpx

from ..errors import StoreError, StoreUnavailable

APPWRITE_ENDPOINT = os.environ.get(
    "APPWRITE_ENDPOINT", "https://cloud.appwrite.io/v1"
).rstrip("/")
APPWRITE_PROJECT_ID = os.environ.get("APPWRITE_PROJECT_ID", "")
APPWRITE_API_KEY = os.environ.get("APPWRITE_API_KEY", "")
APPWRITE_DATABASE_ID = os.environ.get("APPWRITE_DATABASE_ID", "")
APPWRITE_COLLECTION_ID = os.environ.get("APPWRITE_COLLECTION_ID", "")
APPWRITE_BUCKET_ID = os.environ.get("APPWRITE_BUCKET_ID", "")


def appwrite_headers(
    project_id: str = APPWRITE_PROJECT_ID,
    api_key: str = APPWRITE_API_KEY,
) -> Dict[str, str]:
    headers = {"x-appwrite-project": project_id}
    if api_key:
        headers["x-appwrite-key"] = api_key
    return headers


def raise_for_transport(exc: httpx.TransportError, what: str) -> NoReturn:
    raise StoreUnavailable(
        f"{what}: store unreachable ({exc.__class__.__name__})"
    ) from exc


def checked_json(resp: httpx.Response, what: str) -> Dict[str, Any]:
    if resp.status_code >= 400:
        try:
            message = resp.json().get("message") or resp.text
        except ValueError:
            message = resp.text
        raise StoreError(f"{what} failed ({resp.status_code}): {message}")
    try:
        return resp.json()
    except ValueError:
        raise StoreError(f"{what} returned a non-JSON body")
