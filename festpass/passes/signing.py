"""
Verification hash for donation passes.

    HMAC-SHA256(secret, "<securePassId>:<amount>:<timestamp>")  -> hex

Amount and timestamp go through the canonical forms in `helpers`, the same
way at issuance and at verification, so a document store re-serializing a
timestamp ("...Z" vs "...+00:00") or an amount (501 vs 501.0) does not
break verification.
"""
import hashlib
import hmac
from decimal import InvalidOperation

from ..errors import ConfigurationError
from ..helpers import canonical_amount, canonical_timestamp


def _payload(secure_pass_id: str, amount, timestamp) -> bytes:
    return ":".join([
        secure_pass_id,
        canonical_amount(amount),
        canonical_timestamp(timestamp),
    ]).encode("utf-8")


def compute_verification_hash(
        secure_pass_id: str, amount, timestamp, secret: str) -> str:
    if not secret:
        raise ConfigurationError("verification secret not configured")
    payload = _payload(secure_pass_id, amount, timestamp)
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def verification_hash_matches(
        secure_pass_id: str, amount, timestamp, secret: str,
        stored_hash: str) -> bool:
    if not stored_hash:
        return False
    try:
        expected = compute_verification_hash(
            secure_pass_id, amount, timestamp, secret
        )
    except (ValueError, TypeError, InvalidOperation):
        # unparseable stored amount/timestamp
        return False
    return hmac.compare_digest(expected, stored_hash.strip().lower())
