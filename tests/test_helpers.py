from datetime import datetime, timedelta, timezone

import pytest
from starlette.requests import Request

from festpass.helpers import (
    canonical_amount, canonical_timestamp, client_key, UNKNOWN_CLIENT,
)


def _request(headers=None, client=("203.0.113.9", 5123)):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {"type": "http", "method": "GET", "path": "/", "headers": raw}
    if client is not None:
        scope["client"] = client
    return Request(scope)


@pytest.mark.parametrize("value", [
    "2026-10-19T08:15:30.123Z",
    "2026-10-19T08:15:30.123+00:00",
    "2026-10-19T08:15:30.123456",
    "2026-10-19T10:15:30.123+02:00",
])
def test_canonical_timestamp_same_instant_same_text(value):
    assert canonical_timestamp(value) == "2026-10-19T08:15:30.123Z"


def test_canonical_timestamp_from_datetime_and_epoch():
    dt = datetime(2026, 10, 19, 8, 15, 30, 123000, tzinfo=timezone.utc)
    assert canonical_timestamp(dt) == "2026-10-19T08:15:30.123Z"
    assert canonical_timestamp(dt.timestamp()) == "2026-10-19T08:15:30.123Z"

    local = dt.astimezone(timezone(timedelta(hours=-5)))
    assert canonical_timestamp(local) == "2026-10-19T08:15:30.123Z"


def test_canonical_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        canonical_timestamp("yesterday-ish")
    with pytest.raises(ValueError):
        canonical_timestamp(None)


def test_canonical_amount_collapses_representations():
    assert canonical_amount(501) == "501"
    assert canonical_amount(501.0) == "501"
    assert canonical_amount("501.00") == "501"
    assert canonical_amount(1100.5) == "1100.5"
    assert canonical_amount(1000000) == "1000000"
    assert canonical_amount("501.001") != canonical_amount(501)


def test_canonical_amount_rejects_non_finite():
    with pytest.raises(ValueError):
        canonical_amount(float("nan"))
    with pytest.raises(ValueError):
        canonical_amount("Infinity")


def test_client_key_prefers_first_forwarded_address():
    req = _request({"X-Forwarded-For": "198.51.100.1, 10.0.0.2",
                    "X-Real-IP": "10.0.0.3"})
    assert client_key(req) == "198.51.100.1"


def test_client_key_falls_back_to_real_ip_then_peer():
    assert client_key(_request({"X-Real-IP": " 10.0.0.3 "})) == "10.0.0.3"
    assert client_key(_request()) == "203.0.113.9"


def test_client_key_unknown_without_any_source():
    assert client_key(_request(client=None)) == UNKNOWN_CLIENT
