from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from ..errors import InvalidRequest


# ----------------------------
# Limits
# ----------------------------
MAX_AMOUNT = Decimal("1000000")
MAX_DONOR_NAME = 100
MAX_PURPOSE = 500
ANONYMOUS_DONOR = "Anonymous Donor"

PAYMENT_METHODS = ("credit_card", "cash", "bank_transfer", "mobile_payment")
DEFAULT_PAYMENT_METHOD = "mobile_payment"

CENTS = Decimal("0.01")


def parse_amount(value: Any) -> float:
    if value is None or isinstance(value, bool) or value == "":
        raise InvalidRequest("amount is required")
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidRequest("amount must be a number")
    if not d.is_finite():
        raise InvalidRequest("amount must be a number")
    # bounds first: quantize overflows the context on huge exponents
    if d <= 0:
        raise InvalidRequest("amount must be greater than 0")
    if d > MAX_AMOUNT:
        raise InvalidRequest(f"amount cannot exceed {MAX_AMOUNT:,}")
    d = d.quantize(CENTS, rounding=ROUND_HALF_UP)
    if d <= 0:
        raise InvalidRequest("amount must be greater than 0")
    return float(d)


def _clean_text(value: Any, cap: int) -> str:
    if value is None:
        return ""
    return str(value).strip()[:cap]


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class DonationInput:
    donor_name: str
    amount: float
    purpose: str = ""
    payment_method: str = DEFAULT_PAYMENT_METHOD

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DonationInput":
        if not isinstance(payload, dict):
            raise InvalidRequest("donation payload must be an object")
        amount = parse_amount(payload.get("amount"))

        name = _clean_text(
            payload.get("donorName", payload.get("name")), MAX_DONOR_NAME
        )
        purpose = _clean_text(payload.get("purpose"), MAX_PURPOSE)

        method = (payload.get("paymentMethod") or DEFAULT_PAYMENT_METHOD)
        method = str(method).strip()
        if method not in PAYMENT_METHODS:
            raise InvalidRequest(
                "paymentMethod must be one of " + ", ".join(PAYMENT_METHODS)
            )

        return cls(
            donor_name=name or ANONYMOUS_DONOR,
            amount=amount,
            purpose=purpose,
            payment_method=method,
        )


@dataclass(frozen=True)
class DonationPass:
    secure_pass_id: str
    receipt_id: Optional[int]
    display_transaction_id: str
    donor_name: str
    amount: Any
    purpose: str
    transaction_timestamp: str
    verification_hash: str
    payment_method_tag: str
    document_id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "securePassId": self.secure_pass_id,
            "receiptId": self.receipt_id,
            "displayTransactionId": self.display_transaction_id,
            "donorName": self.donor_name,
            "amount": self.amount,
            "purpose": self.purpose,
            "transactionTimestamp": self.transaction_timestamp,
            "verificationHash": self.verification_hash,
            "paymentMethodTag": self.payment_method_tag,
        }

    def to_json(self, *, include_hash: bool = False) -> Dict[str, Any]:
        out = self.to_document()
        out["documentId"] = self.document_id
        if not include_hash:
            out.pop("verificationHash")
        return out

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "DonationPass":
        # stored documents are untrusted; keep raw values so the verifier
        # can judge them instead of failing here
        return cls(
            secure_pass_id=str(doc.get("securePassId") or ""),
            receipt_id=_to_int(doc.get("receiptId")),
            display_transaction_id=str(doc.get("displayTransactionId") or ""),
            donor_name=str(doc.get("donorName") or ANONYMOUS_DONOR),
            amount=doc.get("amount"),
            purpose=str(doc.get("purpose") or ""),
            transaction_timestamp=str(doc.get("transactionTimestamp") or ""),
            verification_hash=str(doc.get("verificationHash") or ""),
            payment_method_tag=str(
                doc.get("paymentMethodTag") or DEFAULT_PAYMENT_METHOD
            ),
            document_id=doc.get("$id") or doc.get("id"),
        )


def display_transaction_id(prefix: str, receipt_id: int) -> str:
    return f"{prefix}-{receipt_id}"
