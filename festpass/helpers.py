import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from starlette.requests import Request


UNKNOWN_CLIENT = "unknown"


# ----------------------------
# Helpers
# ----------------------------
def now_ts() -> float:
    return time.time()


def to_iso(ts: float | None) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def canonical_timestamp(value: Union[str, datetime, float]) -> str:
    """
    One fixed serialization for timestamps that take part in the
    verification hash: UTC, millisecond precision, "Z" suffix.

    Accepts what document stores hand back for the same instant:
      2026-10-19T08:15:30.123Z
      2026-10-19T08:15:30.123+00:00
      2026-10-19T08:15:30.123456   (naive, taken as UTC)
    Raises ValueError for anything unparseable.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        s = value.strip()
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    else:
        raise ValueError(f"unsupported timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def canonical_amount(value) -> str:
    # 501, 501.0 and "501.00" all read "501"; 501.001 stays distinct
    d = Decimal(str(value))
    if not d.is_finite():
        raise ValueError(f"non-finite amount: {value!r}")
    return format(d.normalize(), "f")


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
