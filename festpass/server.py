from __future__ import annotations
import sys

import csv
import httpx
import logging
import os
from decimal import Decimal, InvalidOperation
from io import BytesIO, StringIO
from typing import Optional

from .infra.sql import open_database

from .chat import ChatProxy, GeminiGenerator
from .content import EVENT_INFO, UPDATES, SCHEDULE
from .credentials import CredentialVerifier
from .errors import (
    FestpassError, InvalidRequest, ConfigurationError, StoreError,
    StoreUnavailable, ReceiptAllocationExhausted, UpstreamError,
)
from .model.passstore import (
    PassStore, new_store as new_passstore, BACKEND as PASSSTORE_BACKEND
)
from .model.blobstore import (
    BlobStore, new_store as new_blobstore, BACKEND as BLOBSTORE_BACKEND
)
from .model.ratelimit import (
    new_store as new_windowstore, BACKEND as RATELIMIT_BACKEND
)
from .passes import (
    DonationInput, PassIssuer, PassVerifier, ReceiptSequencer, NOT_FOUND,
)
from .passes.record import DonationPass
from .passimage import render_qr_png, sync_pass_image
from .ratelimit import (
    RateLimiter, RateLimitDecision, auth_rate_limiter, chat_rate_limiter,
)

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse, StreamingResponse

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from .helpers import now_ts, to_iso, client_key

import redis.asyncio as redis

# ----------------------------
# Config & Constants
# ----------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("festpass")

DATABASE_URL = os.environ.get("DATABASE_URL", None)

if PASSSTORE_BACKEND == "sql" and DATABASE_URL is None:
    print("NEED DATABASE_URL for PASSSTORE_BACKEND=sql!")
    sys.exit(1)

VERIFICATION_SECRET = os.environ.get("VERIFICATION_SECRET", "")
ADMIN_PASSWORD_HASH = os.environ.get("ADMIN_PASSWORD_HASH", "")
RECEIPT_PREFIX = os.environ.get("RECEIPT_PREFIX", "ACF")

SESSION_SECRET = os.environ.get("SESSION_SECRET", "dev-secret-change-me")
SESSION_MAX_AGE = int(os.environ.get("SESSION_MAX_AGE", str(8 * 60 * 60)))
CORS_ORIGINS = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",")
    if o.strip()
]

LEDGER_MAX_LIMIT = 500
MAX_PASS_ID_LENGTH = 128

db = open_database(DATABASE_URL) if PASSSTORE_BACKEND == "sql" else None


app = FastAPI(
    title="festpass",
    default_response_class=ORJSONResponse,
)
app.add_middleware(
    SessionMiddleware, secret_key=SESSION_SECRET, max_age=SESSION_MAX_AGE,
)
if CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit", "X-RateLimit-Remaining",
            "X-RateLimit-Reset", "Retry-After",
        ],
    )


# ----------------------------
# Dependencies
# ----------------------------
async def passstore() -> PassStore:
    if PASSSTORE_BACKEND == "sql":
        session: AsyncSession
        async with db.sessions() as session:
            yield new_passstore(db=session, gated=db.gated)
    else:
        yield new_passstore(http=app.state.http)


async def blobstore() -> BlobStore:
    yield new_blobstore(http=getattr(app.state, "http", None))


def pass_issuer(store: PassStore = Depends(passstore)) -> PassIssuer:
    return PassIssuer(
        store, ReceiptSequencer(store), VERIFICATION_SECRET,
        prefix=RECEIPT_PREFIX,
    )


def pass_verifier(store: PassStore = Depends(passstore)) -> PassVerifier:
    return PassVerifier(store, VERIFICATION_SECRET)


def credential_verifier() -> CredentialVerifier:
    return CredentialVerifier(ADMIN_PASSWORD_HASH)


def chat_proxy() -> ChatProxy:
    return ChatProxy(GeminiGenerator(app.state.http))


def auth_limiter(request: Request) -> RateLimiter:
    return request.app.state.auth_limiter


def chat_limiter(request: Request) -> RateLimiter:
    return request.app.state.chat_limiter


# ---
# startup / shutdown
# ---
@app.on_event("startup")
async def _say_hello():
    logger.info("=" * 50)
    logger.info("festpass is starting up...")
    logger.info("   - Pass store   Backend: %s", PASSSTORE_BACKEND)
    logger.info("   - Blob store   Backend: %s", BLOBSTORE_BACKEND)
    logger.info("   - Rate limit   Backend: %s", RATELIMIT_BACKEND)
    if not VERIFICATION_SECRET:
        logger.error("VERIFICATION_SECRET is not set; passes cannot be "
                     "issued or verified")
    if not ADMIN_PASSWORD_HASH:
        logger.warning("ADMIN_PASSWORD_HASH is not set; admin login is "
                       "disabled")
    logger.info("=" * 50)


@app.on_event("startup")
async def _db_init():
    if PASSSTORE_BACKEND == "sql":
        from .model.passstore._sql import create_schema
        async with db.engine.begin() as conn:
            await create_schema(conn)


@app.on_event("startup")
async def _http_client_start():
    app.state.http = httpx.AsyncClient(
        timeout=10.0,
        limits=httpx.Limits(
            max_connections=256, max_keepalive_connections=64
        ),
    )


@app.on_event("startup")
async def _redis_start():
    app.state.redis = None
    if RATELIMIT_BACKEND == "redis":
        REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379")
        app.state.redis = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            max_connections=int(os.getenv("REDIS_MAX_CONN", "64")),
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
            retry_on_timeout=True,
        )


@app.on_event("startup")
async def _limiters_start():
    # one window store; limiter names keep the keys apart
    state = new_windowstore(r=app.state.redis)
    app.state.auth_limiter = auth_rate_limiter(state)
    app.state.chat_limiter = chat_rate_limiter(state)


@app.on_event("shutdown")
async def _http_client_stop():
    http = getattr(app.state, "http", None)
    if http is not None:
        await http.aclose()
        app.state.http = None


@app.on_event("shutdown")
async def _redis_stop():
    r = getattr(app.state, "redis", None)
    if r is not None:
        await r.aclose()
        app.state.redis = None


@app.on_event("shutdown")
async def _db_stop():
    if db is not None:
        await db.dispose()


# ----------------------------
# Error mapping
# ----------------------------
ERROR_STATUS = [
    (InvalidRequest, 400),
    (ConfigurationError, 500),
    (StoreUnavailable, 503),
    (StoreError, 502),
    (ReceiptAllocationExhausted, 409),
    (UpstreamError, 502),
]


def status_for(exc: FestpassError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


def error_response(request: Request, exc: FestpassError,
                   headers: Optional[dict] = None) -> ORJSONResponse:
    status = status_for(exc)
    if isinstance(exc, ConfigurationError):
        logger.error("%s %s: %s", request.method, request.url.path,
                     exc.message)
        message = "Server configuration error"
    else:
        if status >= 500:
            logger.warning("%s %s failed: %s", request.method,
                           request.url.path, exc.message)
        message = exc.message
    return ORJSONResponse({"error": message, "kind": exc.kind},
                          status_code=status, headers=headers)


@app.exception_handler(FestpassError)
async def _festpass_error(request: Request, exc: FestpassError):
    return error_response(request, exc)


# ----------------------------
# Helpers
# ----------------------------
def is_admin(request: Request) -> bool:
    return bool(request.session.get("admin_token"))


def require_admin(request: Request) -> None:
    if not is_admin(request):
        raise HTTPException(status_code=401, detail="admin login required")


def rate_limit_headers(decision: RateLimitDecision) -> dict:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": to_iso(decision.reset_at),
    }


def _amount_total(records) -> str:
    total = Decimal(0)
    for r in records:
        try:
            total += Decimal(str(r.amount))
        except InvalidOperation:
            continue
    return format(total.quantize(Decimal("0.01")), "f")


async def _ledger(store: PassStore, limit: int):
    limit = max(1, min(limit, LEDGER_MAX_LIMIT))
    docs = await store.list_documents(order_desc="receiptId", limit=limit)
    return limit, [DonationPass.from_document(d) for d in docs]


# ----------------------------
# Health & event content
# ----------------------------
@app.get("/healthz")
async def healthz():
    return {
        "ok": True,
        "backends": {
            "passstore": PASSSTORE_BACKEND,
            "blobstore": BLOBSTORE_BACKEND,
            "ratelimit": RATELIMIT_BACKEND,
        },
    }


@app.get("/api/event")
async def get_event():
    return EVENT_INFO


@app.get("/api/updates")
async def get_updates():
    return {"items": UPDATES}


@app.get("/api/schedule")
async def get_schedule():
    return {"days": SCHEDULE}


# ----------------------------
# API: Donations (issue a pass)
# ----------------------------
@app.post("/api/donations", status_code=201)
async def create_donation(
    payload: dict,
    issuer: PassIssuer = Depends(pass_issuer),
    blobs: BlobStore = Depends(blobstore),
):
    donation = DonationInput.from_payload(payload)
    record = await issuer.issue(donation)
    # pass is persisted from here on; the image is best effort
    sync = await sync_pass_image(record, blobs)
    return {
        "pass": record.to_json(),
        "sync": sync,
        "qrUrl": f"/api/passes/{record.secure_pass_id}/qr.png",
    }


# ----------------------------
# API: Verification (public)
# ----------------------------
@app.post("/api/verify")
async def verify_pass(
    payload: dict,
    verifier: PassVerifier = Depends(pass_verifier),
):
    result = await verifier.verify(payload.get("identifier"))
    return result.to_json()


@app.get("/api/passes/{secure_pass_id}/qr.png")
async def pass_qr(secure_pass_id: str):
    pass_id = secure_pass_id.strip()
    if not pass_id or len(pass_id) > MAX_PASS_ID_LENGTH:
        raise InvalidRequest("invalid pass id")
    buf = BytesIO(render_qr_png(pass_id))
    return StreamingResponse(buf, media_type="image/png")


@app.post("/api/passes/{secure_pass_id}/image")
async def retry_pass_image(
    secure_pass_id: str,
    verifier: PassVerifier = Depends(pass_verifier),
    blobs: BlobStore = Depends(blobstore),
):
    result = await verifier.verify(secure_pass_id)
    if result.reason == NOT_FOUND:
        raise HTTPException(404, detail="pass not found")
    if not result.valid:
        raise HTTPException(409, detail="pass failed verification")
    return {"sync": await sync_pass_image(result.record, blobs)}


# ----------------------------
# API: Admin session
# ----------------------------
@app.post("/api/admin/auth")
async def admin_auth(
    payload: dict,
    request: Request,
    limiter: RateLimiter = Depends(auth_limiter),
    creds: CredentialVerifier = Depends(credential_verifier),
):
    decision = await limiter.check(client_key(request))
    if not decision.allowed:
        now = now_ts()
        return ORJSONResponse(
            {
                "error": "Too many login attempts. Please try again later.",
                "retryAfter": decision.retry_after_minutes(now),
            },
            status_code=429,
            headers={"Retry-After": str(decision.retry_after_seconds(now))},
        )

    if not creds.verify(payload.get("password")):
        return ORJSONResponse(
            {"success": False, "error": "Invalid password"}, status_code=401
        )

    token = creds.issue_session_token()
    request.session["admin_token"] = token
    request.session["admin_since"] = now_ts()
    return {"success": True, "token": token, "expiresIn": SESSION_MAX_AGE}


@app.post("/api/admin/logout")
async def admin_logout(request: Request):
    request.session.clear()
    return {"success": True}


@app.get("/api/admin/session")
async def admin_session(request: Request):
    return {
        "admin": is_admin(request),
        "since": to_iso(request.session.get("admin_since")),
    }


# ---- Admin JSON feed: donation ledger ----
@app.get("/api/admin/donations")
async def api_admin_donations(
    request: Request,
    limit: int = 200,
    store: PassStore = Depends(passstore),
):
    require_admin(request)
    limit, records = await _ledger(store, limit)
    return {
        "items": [r.to_json() for r in records],
        "count": len(records),
        "totalAmount": _amount_total(records),
        "limit": limit,
    }


@app.get("/api/admin/donations.csv")
async def api_admin_donations_csv(
    request: Request,
    limit: int = LEDGER_MAX_LIMIT,
    store: PassStore = Depends(passstore),
):
    require_admin(request)
    _, records = await _ledger(store, limit)

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Receipt", "Donor", "Amount", "Purpose",
                     "Payment Method", "Timestamp", "Pass ID"])
    for r in records:
        writer.writerow([r.display_transaction_id, r.donor_name, r.amount,
                         r.purpose, r.payment_method_tag,
                         r.transaction_timestamp, r.secure_pass_id])
    output.seek(0)

    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=donations.csv"},
    )


@app.post("/api/admin/verify")
async def api_admin_verify(
    payload: dict,
    request: Request,
    verifier: PassVerifier = Depends(pass_verifier),
):
    require_admin(request)
    result = await verifier.verify(payload.get("identifier"))
    out = result.to_json()
    out["checkedAt"] = to_iso(now_ts())
    if result.record is not None:
        out["record"] = result.record.to_json(include_hash=True)
    return out


# ----------------------------
# API: Chat
# ----------------------------
@app.post("/api/chat")
async def chat(
    payload: dict,
    request: Request,
    response: Response,
    limiter: RateLimiter = Depends(chat_limiter),
    proxy: ChatProxy = Depends(chat_proxy),
):
    decision = await limiter.check(client_key(request))
    headers = rate_limit_headers(decision)
    if not decision.allowed:
        retry = decision.retry_after_seconds(now_ts())
        headers["Retry-After"] = str(retry)
        return ORJSONResponse(
            {
                "error": "Too many requests. Please wait a moment before "
                         "trying again.",
                "retryAfter": retry,
            },
            status_code=429,
            headers=headers,
        )

    try:
        text = await proxy.reply(payload.get("message"))
    except FestpassError as e:
        return error_response(request, e, headers)
    response.headers.update(headers)
    return {"response": text}
