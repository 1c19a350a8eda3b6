"""SQLAlchemy models package."""

from finsnap.models.account import Account, AccountType
from finsnap.models.category import (
    UNKNOWN_CATEGORY_ID,
    UNKNOWN_CATEGORY_NAME,
    Category,
    build_unknown_category,
)
from finsnap.models.obligation import ObligationStatus, ScheduledObligation
from finsnap.models.transaction import Transaction, TransactionKind

__all__ = [
    "Account",
    "AccountType",
    "Category",
    "ObligationStatus",
    "ScheduledObligation",
    "Transaction",
    "TransactionKind",
    "UNKNOWN_CATEGORY_ID",
    "UNKNOWN_CATEGORY_NAME",
    "build_unknown_category",
]
