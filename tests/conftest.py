import itertools
import os
import sys
import tempfile
from pathlib import Path

import pytest

# server config is read at import time
os.environ["PASSSTORE_BACKEND"] = "appwrite"
os.environ["BLOBSTORE_BACKEND"] = "local"
os.environ["BLOB_DIR"] = tempfile.mkdtemp(prefix="festpass-blobs-")
os.environ["RATELIMIT_BACKEND"] = "memory"
os.environ["VERIFICATION_SECRET"] = "test-verification-secret"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["RECEIPT_PREFIX"] = "ACF"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("ADMIN_PASSWORD_HASH", None)
os.environ.pop("CORS_ORIGINS", None)
os.environ.pop("GEMINI_API_KEY", None)

# repository root, for runs without an installed package
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from festpass.errors import StoreError, StoreUnavailable  # noqa: E402

ADMIN_PASSWORD = "correct horse battery staple"


def _sort_key(value):
    try:
        return (0, float(value))
    except (TypeError, ValueError):
        return (1, 0.0)


class MemoryDocumentStore:
    """In-process stand-in for the document store collaborator."""

    def __init__(self):
        self.docs = []
        self.calls = []
        self.fail = None  # exception instance raised by every call
        self._ids = itertools.count(1)

    async def create_document(self, data):
        self.calls.append(("create", dict(data)))
        if self.fail is not None:
            raise self.fail
        doc = {"$id": f"doc-{next(self._ids)}", **data}
        self.docs.append(doc)
        return dict(doc)

    async def list_documents(self, *, equal=None, order_desc=None,
                             limit=25, select=None):
        self.calls.append(("list", equal, order_desc, limit, select))
        if self.fail is not None:
            raise self.fail
        docs = list(self.docs)
        if equal is not None:
            field, value = equal
            docs = [d for d in docs if d.get(field) == value]
        if order_desc is not None:
            docs.sort(key=lambda d: _sort_key(d.get(order_desc)),
                      reverse=True)
        docs = docs[:limit]
        if select:
            keep = ["$id", *select]
            docs = [{k: d[k] for k in keep if k in d} for d in docs]
        return [dict(d) for d in docs]


class FakeBlobStore:
    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, data, filename, content_type="image/png"):
        if self.fail:
            raise StoreError("upload file failed (503): bucket offline")
        self.uploads.append((filename, content_type, data))
        return f"file-{len(self.uploads)}"


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def blobs():
    return FakeBlobStore()


@pytest.fixture
def down():
    return StoreUnavailable("list documents: store unreachable (ConnectError)")


@pytest.fixture
def sleeps():
    """Records backoff delays instead of sleeping."""
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture(scope="session")
def admin_hash():
    from festpass.credentials import hash_secret
    return hash_secret(ADMIN_PASSWORD)


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD
