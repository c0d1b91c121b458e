from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import ConfigurationError, InvalidRequest
from .record import DonationPass
from .signing import verification_hash_matches

VERIFIED = "verified"
TAMPERED = "tampered"
NOT_FOUND = "not found"

MESSAGES = {
    VERIFIED: "Pass verified successfully",
    TAMPERED: "Pass exists but has been tampered with",
    NOT_FOUND: "Pass does not exist",
}

# lookup order: QR payload first, then the printed id
LOOKUP_FIELDS = ("securePassId", "displayTransactionId")


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    reason: str
    record: Optional[DonationPass]

    @property
    def message(self) -> str:
        return MESSAGES[self.reason]

    def to_json(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "reason": self.reason,
            "message": self.message,
            "record": None if self.record is None else self.record.to_json(),
        }


class PassVerifier:
    """Read-only; safe to call any number of times without credentials."""

    def __init__(self, store, secret: str) -> None:
        self.store = store
        self.secret = secret

    async def _lookup(self, identifier: str) -> Optional[Dict[str, Any]]:
        for field in LOOKUP_FIELDS:
            docs = await self.store.list_documents(
                equal=(field, identifier), limit=1
            )
            if docs:
                return docs[0]
        return None

    async def verify(self, raw_identifier: Optional[str]) -> VerificationResult:
        if raw_identifier is not None and not isinstance(raw_identifier, str):
            raise InvalidRequest("Pass identifier must be a string")
        identifier = (raw_identifier or "").strip()
        if not identifier:
            raise InvalidRequest("Pass identifier is required")
        if not self.secret:
            raise ConfigurationError("verification secret not configured")

        doc = await self._lookup(identifier)
        if doc is None:
            return VerificationResult(False, NOT_FOUND, None)

        record = DonationPass.from_document(doc)
        ok = verification_hash_matches(
            record.secure_pass_id,
            record.amount,
            record.transaction_timestamp,
            self.secret,
            record.verification_hash,
        )
        if not ok:
            return VerificationResult(False, TAMPERED, record)
        return VerificationResult(True, VERIFIED, record)
