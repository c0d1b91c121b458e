from .orm import Base, DonationPassRow, FIELD_COLUMNS, row_to_document

__all__ = ["Base", "DonationPassRow", "FIELD_COLUMNS", "row_to_document"]
