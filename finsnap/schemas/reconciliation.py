"""Pydantic schemas for the reconciliation API."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from finsnap.models.transaction import TransactionKind
from finsnap.schemas.base import BaseResponse
from finsnap.schemas.candidate import TIME_PATTERN, CandidateEvent


class ReconcileRequest(BaseModel):
    """A batch of extracted candidates to reconcile."""

    candidates: list[CandidateEvent] = Field(default_factory=list)


class MatchResultResponse(BaseModel):
    index: int
    confidence: str
    obligation_id: str | None = None
    cheque_number: str | None = None
    reason: str
    warning: str | None = None


class MatchSummaryResponse(BaseModel):
    total: int
    high: int
    medium: int
    low: int
    none: int
    has_issues: bool
    warnings: list[str] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    confirmed: list[CandidateEvent]
    duplicates_skipped: int
    matches: list[MatchResultResponse] = Field(default_factory=list)
    summary: MatchSummaryResponse


class CommitMatch(BaseModel):
    """A cheque match the user accepted, by index into ``confirmed``."""

    index: int = Field(..., ge=0)
    obligation_id: str


class CommitRequest(BaseModel):
    confirmed: list[CandidateEvent] = Field(default_factory=list)
    # None means "re-run cheque matching against the current obligations"
    matches: list[CommitMatch] | None = None
    reconcile_balances: bool = True


class TransactionResponse(BaseResponse):
    id: str
    amount: Decimal
    currency: str
    original_amount: Decimal | None
    original_currency: str | None
    exchange_rate: Decimal | None
    extracted_amount: Decimal | None = None
    merchant: str
    txn_date: date
    txn_time: str | None
    category: str
    kind: TransactionKind
    account_id: str | None
    is_transfer: bool
    is_cheque: bool
    cheque_number: str | None
    snapshot_available_balance: Decimal | None
    snapshot_available_credit: Decimal | None
    raw_text: str | None
    obligation_id: str | None
    is_adjustment: bool
    created_at: datetime | None = None


class CommitResponse(BaseModel):
    transactions: list[TransactionResponse]
    adjustments: int


class BalanceAdjustRequest(BaseModel):
    target_balance: Decimal
    on_date: date | None = None
    at_time: str | None = Field(default=None, pattern=TIME_PATTERN)


class BalanceAdjustResponse(BaseModel):
    account_id: str
    balance: Decimal
    adjusted: bool
    transaction: TransactionResponse | None = None


class AccountHealthResponse(BaseResponse):
    account_id: str
    needs_reconciliation: bool
    severity: str
    current_balance: Decimal
    expected_balance: Decimal
    difference: Decimal
    snapshot_transaction_id: str | None = None
