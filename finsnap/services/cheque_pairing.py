"""Manual pairing of a scheduled cheque with an already-recorded transaction.

Used when a cheque cleared without being matched automatically (no number on
the bank message, or the transaction was entered by hand). Candidates are
ranked by a relevance score; the user makes the final choice.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from finsnap.models import ScheduledObligation, Transaction, TransactionKind
from finsnap.services.cheque_matching import MatchConfidence

PAIRING_WINDOW = timedelta(days=30)
PAIRABLE_KINDS = (TransactionKind.EXPENSE, TransactionKind.OBLIGATION)


@dataclass(frozen=True)
class PairingCandidate:
    transaction: Transaction
    score: int
    reasons: list[str] = field(default_factory=list)

    @property
    def confidence(self) -> MatchConfidence:
        return pairing_confidence(self.score)


def is_transaction_paired(transaction_id: str, obligations: Iterable[ScheduledObligation]) -> bool:
    return any(obligation.matched_transaction_id == transaction_id for obligation in obligations)


def pairing_confidence(score: int) -> MatchConfidence:
    if score >= 150:
        return MatchConfidence.HIGH
    if score >= 75:
        return MatchConfidence.MEDIUM
    if score >= 25:
        return MatchConfidence.LOW
    return MatchConfidence.NONE


def score_pairing(transaction: Transaction, obligation: ScheduledObligation) -> tuple[int, list[str]]:
    score = 0
    reasons: list[str] = []

    amount_diff = abs(Decimal(transaction.amount) - Decimal(obligation.amount))
    ratio = amount_diff / obligation.amount if obligation.amount else None
    if amount_diff < Decimal("0.01"):
        score += 100
        reasons.append("Exact amount match")
    elif ratio is not None and ratio < Decimal("0.05"):
        score += 50
        reasons.append(f"Close amount (±{ratio * 100:.1f}%)")
    elif ratio is not None and ratio < Decimal("0.10"):
        score += 25
        reasons.append(f"Similar amount (±{ratio * 100:.1f}%)")

    tx_merchant = (transaction.merchant or "").lower()
    due_merchant = (obligation.merchant or "").lower()
    if tx_merchant and due_merchant:
        if tx_merchant == due_merchant:
            score += 75
            reasons.append("Exact merchant match")
        elif due_merchant in tx_merchant or tx_merchant in due_merchant:
            score += 50
            reasons.append("Merchant keyword match")

    days = abs((transaction.txn_date - obligation.due_date).days)
    if days < 7:
        score += 25
        reasons.append(f"{days} day{'' if days == 1 else 's'} difference")
    elif days < 14:
        score += 15
        reasons.append(f"{days} days difference")
    elif days < 30:
        score += 5
        reasons.append(f"{days} days difference")

    number = (obligation.cheque_number or "").strip()
    if number and (number in (transaction.merchant or "") or number in (transaction.raw_text or "")):
        score += 75
        reasons.append("Cheque number found in transaction")

    if transaction.category == obligation.category:
        score += 10
        reasons.append("Category match")

    if not reasons:
        reasons.append("Low confidence match")
    return score, reasons


def find_pairing_candidates(
    obligation: ScheduledObligation,
    transactions: Iterable[Transaction],
    obligations: Sequence[ScheduledObligation],
) -> list[PairingCandidate]:
    """Unpaired transactions of the obligation's account near its due date, best first."""
    earliest = obligation.due_date - PAIRING_WINDOW
    latest = obligation.due_date + PAIRING_WINDOW

    candidates = []
    for transaction in transactions:
        if is_transaction_paired(transaction.id, obligations):
            continue
        if transaction.account_id != obligation.account_id:
            continue
        if not earliest <= transaction.txn_date <= latest:
            continue
        if transaction.kind not in PAIRABLE_KINDS:
            continue
        score, reasons = score_pairing(transaction, obligation)
        candidates.append(PairingCandidate(transaction=transaction, score=score, reasons=reasons))

    return sorted(candidates, key=lambda candidate: candidate.score, reverse=True)


def can_pair(
    transaction: Transaction,
    obligation: ScheduledObligation,
    obligations: Iterable[ScheduledObligation],
) -> tuple[bool, str | None]:
    if is_transaction_paired(transaction.id, obligations):
        return False, "Transaction is already paired to another scheduled item"
    if transaction.account_id != obligation.account_id:
        return False, "Account mismatch"
    if transaction.kind not in PAIRABLE_KINDS:
        return False, "Transaction must be EXPENSE or OBLIGATION type"
    return True, None
