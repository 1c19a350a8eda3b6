"""Confirmed transaction model."""

from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from finsnap.database import Base
from finsnap.models.base import IdMixin, TimestampMixin

if TYPE_CHECKING:
    from finsnap.schemas.candidate import SnapshotMeta


class TransactionKind(str, enum.Enum):
    """What a transaction does to its account."""

    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    OBLIGATION = "OBLIGATION"

    def balance_effect(self, amount: Decimal) -> Decimal:
        """Signed change this kind applies to an account balance.

        Obligations are commitments, not movements, so they leave the balance alone.
        """
        if self is TransactionKind.EXPENSE:
            return -amount
        if self is TransactionKind.INCOME:
            return amount
        return Decimal("0")


class Transaction(IdMixin, TimestampMixin, Base):
    """A candidate event that the user confirmed and that now has a permanent identity."""

    __tablename__ = "transactions"

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    original_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    original_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    exchange_rate: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    # Face amount the extractor read, kept when the amount was rewritten from a balance change
    extracted_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    merchant: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    txn_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    # "HH:MM"; None when the source had no time of day
    txn_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[TransactionKind] = mapped_column(Enum(TransactionKind), nullable=False)

    account_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("accounts.id"), nullable=True, index=True
    )
    is_transfer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_cheque: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cheque_number: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Absolute account state reported next to the transaction, if any
    snapshot_available_balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    snapshot_available_credit: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    raw_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    group_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    obligation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_adjustment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def available_balance(self) -> Decimal | None:
        return self.snapshot_available_balance

    @property
    def available_credit(self) -> Decimal | None:
        return self.snapshot_available_credit

    @property
    def snapshot_meta(self) -> SnapshotMeta | None:
        from finsnap.schemas.candidate import SnapshotMeta

        if self.snapshot_available_balance is None and self.snapshot_available_credit is None:
            return None
        return SnapshotMeta(
            available_balance=self.snapshot_available_balance,
            available_credit=self.snapshot_available_credit,
        )

    def __repr__(self) -> str:
        return f"<Transaction {self.kind.value} {self.amount} {self.currency} on {self.txn_date}>"
