# model/passstore/_appwrite.py
from __future__ import annotations
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ...infra.appwrite import (
    APPWRITE_ENDPOINT, APPWRITE_DATABASE_ID, APPWRITE_COLLECTION_ID,
    appwrite_headers, raise_for_transport, checked_json,
)


# ---- query strings (Appwrite 1.5+ JSON query syntax)
def q_equal(field: str, value: Any) -> str:
    return json.dumps({"method": "equal", "attribute": field,
                       "values": [value]})


def q_order_desc(field: str) -> str:
    return json.dumps({"method": "orderDesc", "attribute": field})


def q_limit(n: int) -> str:
    return json.dumps({"method": "limit", "values": [n]})


def q_select(fields: List[str]) -> str:
    return json.dumps({"method": "select", "values": list(fields)})


class PassStore:
    def __init__(
        self, http: httpx.AsyncClient, *,
        endpoint: str = APPWRITE_ENDPOINT,
        database_id: str = APPWRITE_DATABASE_ID,
        collection_id: str = APPWRITE_COLLECTION_ID,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.http = http
        self.url = (
            f"{endpoint.rstrip('/')}/databases/{database_id}"
            f"/collections/{collection_id}/documents"
        )
        self.headers = headers if headers is not None else appwrite_headers()

    async def create_document(self, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = await self.http.post(
                self.url,
                json={"documentId": "unique()", "data": data},
                headers=self.headers,
            )
        except httpx.TransportError as e:
            raise_for_transport(e, "create document")
        return checked_json(resp, "create document")

    async def list_documents(
        self, *,
        equal: Optional[Tuple[str, Any]] = None,
        order_desc: Optional[str] = None,
        limit: int = 25,
        select: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        queries = []
        if equal is not None:
            queries.append(q_equal(*equal))
        if order_desc is not None:
            queries.append(q_order_desc(order_desc))
        queries.append(q_limit(limit))
        if select:
            queries.append(q_select(select))

        try:
            resp = await self.http.get(
                self.url,
                params=[("queries[]", q) for q in queries],
                headers=self.headers,
            )
        except httpx.TransportError as e:
            raise_for_transport(e, "list documents")
        body = checked_json(resp, "list documents")
        return list(body.get("documents") or [])
