from __future__ import annotations
import asyncio
import logging
import secrets
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..errors import StoreError

logger = logging.getLogger(__name__)

BASE_RECEIPT_ID = 10001
PEEK_LIMIT = 5
MAX_RETRIES = 5
BACKOFF_MS = 100

# degraded allocations land here: 10000..909999
FALLBACK_MIN = 10000
FALLBACK_SPAN = 900000
FALLBACK_RANGE = range(FALLBACK_MIN, FALLBACK_MIN + FALLBACK_SPAN)

_sysrand = secrets.SystemRandom()


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if f != f or f in (float("inf"), float("-inf")):
        return None
    return int(f)


class ReceiptSequencer:
    """
    Hands out the next human-readable receipt number.

    This is not a transactional counter. It peeks at the top few receipt
    ids, proposes max + 1 and retries with jittered exponential backoff when
    the peek already shows that number taken. Uniqueness is only enforced by
    the write-time check in the issuer. A store offering atomic
    increment-and-read should replace this class outright.
    """

    def __init__(
        self,
        store,
        *,
        base: int = BASE_RECEIPT_ID,
        max_retries: int = MAX_RETRIES,
        backoff_ms: float = BACKOFF_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.base = base
        self.max_retries = max(1, max_retries)
        self.backoff_ms = backoff_ms
        self.sleep = sleep

    async def _peek(self) -> List[Dict[str, Any]]:
        return await self.store.list_documents(
            order_desc="receiptId",
            limit=PEEK_LIMIT,
            select=["receiptId"],
        )

    async def next_receipt_id(self) -> int:
        for attempt in range(self.max_retries):
            if attempt > 0:
                delay_ms = _sysrand.uniform(0, self.backoff_ms * 2 ** attempt)
                await self.sleep(delay_ms / 1000.0)

            try:
                top = await self._peek()
            except StoreError as e:
                logger.warning(
                    "receipt id lookup failed (attempt %d/%d): %s",
                    attempt + 1, self.max_retries, e,
                )
                continue

            if not top:
                return self.base
            last = _as_int(top[0].get("receiptId"))
            if last is None:
                return self.base

            candidate = last + 1
            taken = {_as_int(d.get("receiptId")) for d in top}
            if candidate in taken:
                logger.warning(
                    "receipt id %d collision detected, retrying", candidate
                )
                continue
            return candidate

        return self.fallback_receipt_id()

    @staticmethod
    def fallback_receipt_id() -> int:
        receipt_id = FALLBACK_MIN + secrets.randbelow(FALLBACK_SPAN)
        logger.warning(
            "degraded receipt allocation: using random receipt id %d",
            receipt_id,
        )
        return receipt_id
