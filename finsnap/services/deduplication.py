"""Duplicate suppression for extracted candidates."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from finsnap.logger import get_logger
from finsnap.models import Transaction
from finsnap.schemas.candidate import CandidateEvent
from finsnap.services.reconciliation_config import DEFAULT_CONFIG

logger = get_logger(__name__)


@dataclass
class DuplicateFilterResult:
    """Candidates that survived the filter plus how many were rejected."""

    unique: list[CandidateEvent] = field(default_factory=list)
    duplicates_skipped: int = 0


def is_duplicate(
    candidate: CandidateEvent,
    existing: Iterable[Transaction],
    tolerance: Decimal = DEFAULT_CONFIG.amount_tolerance,
) -> bool:
    """Return True if a confirmed transaction already records this event.

    Same amount (within tolerance, stored or face value), kind, date and
    time-of-day. The merchant label is ignored: extraction wording for one
    real event varies between runs
    ("Starbucks" vs "Starbucks Coffee").
    """
    candidate_time = candidate.txn_time or ""
    return any(
        _same_amount(txn, candidate, tolerance)
        and txn.kind == candidate.kind
        and txn.txn_date == candidate.txn_date
        and (txn.txn_time or "") == candidate_time
        for txn in existing
    )


def _same_amount(txn: Transaction, candidate: CandidateEvent, tolerance: Decimal) -> bool:
    if abs(txn.amount - candidate.amount) < tolerance:
        return True
    # A stored amount rewritten from a balance change no longer equals the face
    # value a re-read of the same message yields; compare the kept face value too.
    return txn.extracted_amount is not None and abs(txn.extracted_amount - candidate.amount) < tolerance


def filter_duplicates(
    candidates: Sequence[CandidateEvent],
    existing: Sequence[Transaction],
    tolerance: Decimal = DEFAULT_CONFIG.amount_tolerance,
) -> DuplicateFilterResult:
    """Split a batch into new candidates and a count of already-recorded ones."""
    result = DuplicateFilterResult()
    for candidate in candidates:
        if is_duplicate(candidate, existing, tolerance):
            result.duplicates_skipped += 1
            logger.info(
                "Skipped duplicate candidate",
                amount=str(candidate.amount),
                kind=candidate.kind.value,
                txn_date=candidate.txn_date.isoformat(),
                txn_time=candidate.txn_time,
            )
            continue
        result.unique.append(candidate)
    return result
