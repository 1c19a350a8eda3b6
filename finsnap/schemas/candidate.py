"""Pydantic schemas for unconfirmed candidate events."""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from finsnap.models.transaction import TransactionKind

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

Money = Annotated[Decimal, Field(ge=0)]
CurrencyCode = Annotated[str, Field(min_length=3, max_length=3)]


class SnapshotMeta(BaseModel):
    """Absolute account state reported alongside a transaction."""

    model_config = ConfigDict(frozen=True)

    available_balance: Decimal | None = None
    available_credit: Decimal | None = None


class CandidateEvent(BaseModel):
    """An unconfirmed financial event proposed by the extraction collaborator.

    Field names follow the stored transaction columns; the extractor's
    ``date``/``time`` keys are accepted as aliases.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    amount: Money
    currency: CurrencyCode
    original_amount: Money | None = None
    original_currency: CurrencyCode | None = None
    exchange_rate: Decimal | None = None
    # Face amount before balance inference rewrote ``amount``
    extracted_amount: Money | None = None

    merchant: str = ""
    txn_date: date = Field(validation_alias=AliasChoices("txn_date", "date"))
    txn_time: Annotated[str, Field(pattern=TIME_PATTERN)] | None = Field(
        default=None, validation_alias=AliasChoices("txn_time", "time")
    )
    category: str = "Other"
    kind: TransactionKind = TransactionKind.EXPENSE

    account_id: str | None = None
    is_transfer: bool = False
    is_cheque: bool = False
    cheque_number: str | None = None
    snapshot_meta: SnapshotMeta | None = None
    raw_text: str | None = None
    # Set on entries the engine synthesizes to absorb unexplained balance gaps
    is_adjustment: bool = False

    @field_validator("currency", "original_currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value

    @field_validator("txn_time", "cheque_number", "account_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def _upper_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def has_cheque_reference(self) -> bool:
        return self.is_cheque and bool(self.cheque_number)

    @property
    def available_balance(self) -> Decimal | None:
        return self.snapshot_meta.available_balance if self.snapshot_meta else None

    @property
    def available_credit(self) -> Decimal | None:
        return self.snapshot_meta.available_credit if self.snapshot_meta else None
