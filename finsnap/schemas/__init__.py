"""Pydantic schemas package."""

from finsnap.schemas.base import BaseResponse, ListResponse
from finsnap.schemas.candidate import CandidateEvent, SnapshotMeta
from finsnap.schemas.obligation import (
    InsufficientFundsResponse,
    ObligationInput,
    ObligationListResponse,
    ObligationResponse,
    ObligationSeriesParams,
    SeriesFrequency,
    SeriesValidateRequest,
    SeriesValidateResponse,
    ValidationIssueResponse,
)
from finsnap.schemas.pairing import PairingCandidateResponse, PairRequest
from finsnap.schemas.reconciliation import (
    AccountHealthResponse,
    BalanceAdjustRequest,
    BalanceAdjustResponse,
    CommitMatch,
    CommitRequest,
    CommitResponse,
    MatchResultResponse,
    MatchSummaryResponse,
    ReconcileRequest,
    ReconcileResponse,
    TransactionResponse,
)

__all__ = [
    "AccountHealthResponse",
    "BalanceAdjustRequest",
    "BalanceAdjustResponse",
    "BaseResponse",
    "CandidateEvent",
    "CommitMatch",
    "CommitRequest",
    "CommitResponse",
    "InsufficientFundsResponse",
    "ListResponse",
    "MatchResultResponse",
    "MatchSummaryResponse",
    "ObligationInput",
    "ObligationListResponse",
    "ObligationResponse",
    "ObligationSeriesParams",
    "PairRequest",
    "PairingCandidateResponse",
    "ReconcileRequest",
    "ReconcileResponse",
    "SeriesFrequency",
    "SeriesValidateRequest",
    "SeriesValidateResponse",
    "SnapshotMeta",
    "TransactionResponse",
    "ValidationIssueResponse",
]
