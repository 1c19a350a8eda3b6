"""Pydantic schemas for scheduled obligations and cheque series."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from finsnap.models.obligation import ObligationStatus
from finsnap.models.transaction import TransactionKind
from finsnap.schemas.base import BaseResponse, ListResponse
from finsnap.schemas.candidate import CurrencyCode


class SeriesFrequency(str, Enum):
    """Spacing between cheques of a series; CUSTOM counts days."""

    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    CUSTOM = "CUSTOM"


class ObligationSeriesParams(BaseModel):
    """Request to create a series of post-dated cheques."""

    merchant: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    currency: CurrencyCode
    category: str = "Other"
    account_id: str | None = None
    first_due_date: date
    frequency: SeriesFrequency = SeriesFrequency.MONTHLY
    interval: int = Field(default=1, ge=1, le=365)
    count: int = Field(..., ge=1, le=120)
    starting_cheque_number: int | None = Field(default=None, ge=0)

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class ObligationResponse(BaseResponse):
    id: str
    merchant: str
    amount: Decimal
    currency: str
    category: str
    kind: TransactionKind
    account_id: str | None
    due_date: date
    status: ObligationStatus
    is_cheque: bool
    cheque_number: str | None
    series_id: str | None
    matched_transaction_id: str | None
    cleared_date: date | None
    notes: str | None
    created_at: datetime | None = None


ObligationListResponse = ListResponse[ObligationResponse]


class ObligationInput(BaseModel):
    """Obligation as submitted for validation; not persisted."""

    id: str
    due_date: date
    cheque_number: str | None = None
    amount: Decimal = Decimal("0")


class SeriesValidateRequest(BaseModel):
    obligations: list[ObligationInput] = Field(default_factory=list)
    series_id: str | None = None


class ValidationIssueResponse(BaseResponse):
    severity: str
    category: str
    obligation_id: str
    cheque_number: str | None
    message: str


class SeriesValidateResponse(BaseModel):
    is_valid: bool
    has_numbering_issues: bool
    has_date_issues: bool
    issues: list[ValidationIssueResponse] = Field(default_factory=list)
    next_cheque_number: str | None = None
    next_due_date: date | None = None


class InsufficientFundsResponse(BaseResponse):
    account_id: str
    account_name: str
    current_balance: Decimal
    upcoming_obligations: Decimal
    shortage: Decimal
    days_until_first: int
    affected_obligations: list[ObligationResponse] = Field(default_factory=list)
