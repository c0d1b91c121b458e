from .record import (
    DonationInput, DonationPass, MAX_AMOUNT, PAYMENT_METHODS, ANONYMOUS_DONOR,
)
from .sequencer import ReceiptSequencer, BASE_RECEIPT_ID, FALLBACK_RANGE
from .issuer import PassIssuer
from .verifier import (
    PassVerifier, VerificationResult, VERIFIED, TAMPERED, NOT_FOUND,
)
from .signing import compute_verification_hash

__all__ = [
    "DonationInput", "DonationPass", "MAX_AMOUNT", "PAYMENT_METHODS",
    "ANONYMOUS_DONOR",
    "ReceiptSequencer", "BASE_RECEIPT_ID", "FALLBACK_RANGE",
    "PassIssuer",
    "PassVerifier", "VerificationResult", "VERIFIED", "TAMPERED", "NOT_FOUND",
    "compute_verification_hash",
]
