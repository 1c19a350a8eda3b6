"""Account model holding the user's known balance state."""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import Boolean, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from finsnap.database import Base
from finsnap.models.base import IdMixin, TimestampMixin


class AccountType(str, enum.Enum):
    """Account type classification."""

    BANK = "BANK"
    CREDIT_CARD = "CREDIT_CARD"
    CASH = "CASH"
    WALLET = "WALLET"
    OTHER = "OTHER"


class Account(IdMixin, TimestampMixin, Base):
    """
    Account with a signed running balance.

    Positive balance = asset (bank, cash), negative balance = liability
    (credit card debt). Credit cards carry a credit limit so that an
    "available credit" snapshot can be turned back into a balance.
    """

    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        Enum(AccountType), nullable=False, default=AccountType.BANK
    )
    last4_digits: Mapped[str | None] = mapped_column(String(4), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    credit_limit: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    # False means balances are only ever changed by explicit manual adjustment
    auto_update_balance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Account {self.name} ({self.account_type.value}) {self.balance} {self.currency}>"
