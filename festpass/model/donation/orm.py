from sqlalchemy.orm import declarative_base
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
)


Base = declarative_base()


# ----------------------------
# ORM models
# ----------------------------
class DonationPassRow(Base):
    __tablename__ = "donation_passes"
    id = Column(String, primary_key=True)  # document id
    secure_pass_id = Column(String, nullable=False, unique=True)
    # uniqueness is checked by the issuer before each write
    receipt_id = Column(Integer, nullable=False, index=True)
    display_transaction_id = Column(String, nullable=False, index=True)
    donor_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    purpose = Column(String, nullable=False, default="")
    transaction_timestamp = Column(String, nullable=False)
    verification_hash = Column(String, nullable=False)
    payment_method_tag = Column(String, nullable=False,
                                default="mobile_payment")
    created_at = Column(Float, nullable=False)


# document attribute -> column
FIELD_COLUMNS = {
    "securePassId": DonationPassRow.secure_pass_id,
    "receiptId": DonationPassRow.receipt_id,
    "displayTransactionId": DonationPassRow.display_transaction_id,
    "donorName": DonationPassRow.donor_name,
    "amount": DonationPassRow.amount,
    "purpose": DonationPassRow.purpose,
    "transactionTimestamp": DonationPassRow.transaction_timestamp,
    "verificationHash": DonationPassRow.verification_hash,
    "paymentMethodTag": DonationPassRow.payment_method_tag,
}


def row_to_document(row: DonationPassRow) -> dict:
    doc = {"$id": row.id}
    for field, col in FIELD_COLUMNS.items():
        doc[field] = getattr(row, col.key)
    return doc
