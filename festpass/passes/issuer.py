from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from ..errors import ConfigurationError, ReceiptAllocationExhausted
from ..helpers import canonical_timestamp
from .record import DonationInput, DonationPass, display_transaction_id
from .sequencer import ReceiptSequencer
from .signing import compute_verification_hash

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "ACF"
MAX_SAVE_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PassIssuer:
    def __init__(
        self,
        store,
        sequencer: ReceiptSequencer,
        secret: str,
        *,
        prefix: str = DEFAULT_PREFIX,
        max_attempts: int = MAX_SAVE_ATTEMPTS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.sequencer = sequencer
        self.secret = secret
        self.prefix = prefix
        self.max_attempts = max(1, max_attempts)
        self.clock = clock

    async def _receipt_id_is_free(self, receipt_id: int) -> bool:
        docs = await self.store.list_documents(
            equal=("receiptId", receipt_id), limit=1
        )
        return len(docs) == 0

    async def _allocate(self) -> int:
        receipt_id = await self.sequencer.next_receipt_id()
        for attempt in range(1, self.max_attempts + 1):
            if await self._receipt_id_is_free(receipt_id):
                return receipt_id
            logger.warning(
                "receipt id %d already exists (attempt %d/%d)",
                receipt_id, attempt, self.max_attempts,
            )
            if attempt < self.max_attempts:
                receipt_id = await self.sequencer.next_receipt_id()
        raise ReceiptAllocationExhausted(
            "Failed to generate unique receipt ID after multiple attempts"
        )

    async def issue(self, donation: DonationInput) -> DonationPass:
        """
        Persist one donation pass and return it as stored.

        Store errors reach the caller unchanged; StoreUnavailable means the
        transport itself was unreachable.
        """
        if not self.secret:
            logger.error("VERIFICATION_SECRET not configured")
            raise ConfigurationError("verification secret not configured")

        secure_pass_id = str(uuid.uuid4())
        timestamp = canonical_timestamp(self.clock())
        receipt_id = await self._allocate()

        record = DonationPass(
            secure_pass_id=secure_pass_id,
            receipt_id=receipt_id,
            display_transaction_id=display_transaction_id(
                self.prefix, receipt_id
            ),
            donor_name=donation.donor_name,
            amount=donation.amount,
            purpose=donation.purpose,
            transaction_timestamp=timestamp,
            verification_hash=compute_verification_hash(
                secure_pass_id, donation.amount, timestamp, self.secret
            ),
            payment_method_tag=donation.payment_method,
        )
        created = await self.store.create_document(record.to_document())
        logger.info("issued pass %s (%s)",
                    record.display_transaction_id, secure_pass_id)
        return DonationPass.from_document({**record.to_document(), **created})
