"""Scheduled obligation model (post-dated cheques, recurring bills)."""

from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from finsnap.database import Base
from finsnap.models.base import IdMixin, TimestampMixin
from finsnap.models.transaction import TransactionKind


class ObligationStatus(str, enum.Enum):
    """Obligation lifecycle; PENDING moves to CLEARED exactly once."""

    PENDING = "PENDING"
    CLEARED = "CLEARED"


class ScheduledObligation(IdMixin, TimestampMixin, Base):
    """A future-dated payment commitment not yet realized as a transaction."""

    __tablename__ = "scheduled_obligations"

    merchant: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="Other")
    kind: Mapped[TransactionKind] = mapped_column(
        Enum(TransactionKind), nullable=False, default=TransactionKind.EXPENSE
    )
    account_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("accounts.id"), nullable=True, index=True
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[ObligationStatus] = mapped_column(
        Enum(ObligationStatus), nullable=False, default=ObligationStatus.PENDING
    )

    is_cheque: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cheque_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    series_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    matched_transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cleared_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        number = f" #{self.cheque_number}" if self.cheque_number else ""
        return f"<ScheduledObligation{number} {self.amount} due {self.due_date} ({self.status.value})>"
