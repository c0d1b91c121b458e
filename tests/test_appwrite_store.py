import asyncio
import json

import httpx
import pytest

from festpass.errors import StoreError, StoreUnavailable
from festpass.model.blobstore._appwrite import BlobStore
from festpass.model.passstore._appwrite import PassStore

ENDPOINT = "https://appwrite.test/v1"
HEADERS = {"x-appwrite-project": "proj", "x-appwrite-key": "key"}


def _run(handler, fn):
    async def go():
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler)
        ) as http:
            return await fn(http)
    return asyncio.run(go())


def _passstore(http):
    return PassStore(http, endpoint=ENDPOINT, database_id="db",
                     collection_id="passes", headers=HEADERS)


def test_create_document_posts_unique_id_and_data():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"$id": "abc123", "receiptId": 10001})

    created = _run(handler, lambda http: _passstore(http).create_document(
        {"receiptId": 10001}
    ))
    assert created["$id"] == "abc123"
    assert seen["method"] == "POST"
    assert seen["path"] == "/v1/databases/db/collections/passes/documents"
    assert seen["headers"]["x-appwrite-project"] == "proj"
    assert seen["headers"]["x-appwrite-key"] == "key"
    assert seen["body"] == {"documentId": "unique()",
                            "data": {"receiptId": 10001}}


def test_list_documents_sends_json_queries():
    seen = {}

    def handler(request):
        seen["queries"] = [
            json.loads(q) for q in request.url.params.get_list("queries[]")
        ]
        return httpx.Response(200, json={
            "total": 1, "documents": [{"$id": "x", "receiptId": 10004}],
        })

    docs = _run(handler, lambda http: _passstore(http).list_documents(
        equal=("displayTransactionId", "ACF-10004"),
        order_desc="receiptId", limit=5, select=["receiptId"],
    ))
    assert docs == [{"$id": "x", "receiptId": 10004}]
    assert seen["queries"] == [
        {"method": "equal", "attribute": "displayTransactionId",
         "values": ["ACF-10004"]},
        {"method": "orderDesc", "attribute": "receiptId"},
        {"method": "limit", "values": [5]},
        {"method": "select", "values": ["receiptId"]},
    ]


def test_unreachable_store_is_store_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreUnavailable):
        _run(handler, lambda http: _passstore(http).list_documents(limit=1))


def test_error_status_is_store_error_with_message():
    def handler(request):
        return httpx.Response(
            401, json={"message": "missing scope", "code": 401}
        )

    with pytest.raises(StoreError) as ei:
        _run(handler, lambda http: _passstore(http).create_document({}))
    assert not isinstance(ei.value, StoreUnavailable)
    assert "missing scope" in ei.value.message


def test_non_json_body_is_store_error():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(StoreError):
        _run(handler, lambda http: _passstore(http).list_documents(limit=1))


def test_blob_upload_is_multipart_and_returns_file_id():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["ctype"] = request.headers["content-type"]
        seen["body"] = request.read()
        return httpx.Response(201, json={"$id": "file-9"})

    ref = _run(handler, lambda http: BlobStore(
        http, endpoint=ENDPOINT, bucket_id="bucket", headers=HEADERS,
    ).upload(b"\x89PNG-bytes", "pass-ACF-10001.png", "image/png"))

    assert ref == "file-9"
    assert seen["path"] == "/v1/storage/buckets/bucket/files"
    assert seen["ctype"].startswith("multipart/form-data")
    assert b'name="fileId"' in seen["body"]
    assert b"unique()" in seen["body"]
    assert b'filename="pass-ACF-10001.png"' in seen["body"]
