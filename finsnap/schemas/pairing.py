"""Pydantic schemas for manual cheque pairing."""

from pydantic import BaseModel, Field

from finsnap.schemas.reconciliation import TransactionResponse


class PairRequest(BaseModel):
    transaction_id: str = Field(..., min_length=1)


class PairingCandidateResponse(BaseModel):
    transaction: TransactionResponse
    score: int
    confidence: str
    reasons: list[str] = Field(default_factory=list)
