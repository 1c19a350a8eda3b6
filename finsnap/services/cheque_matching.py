"""Cheque-to-obligation matching.

Two-factor matching: the cheque number picks the candidates, the amount
verifies them. Matching never changes an obligation; clearing happens when
the user commits the transaction.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from finsnap.logger import get_logger
from finsnap.models import ObligationStatus, ScheduledObligation
from finsnap.schemas.candidate import CandidateEvent
from finsnap.services.reconciliation_config import DEFAULT_CONFIG, ReconciliationConfig

logger = get_logger(__name__)


class MatchConfidence(str, enum.Enum):
    """Confidence tier of a cheque match."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"

    @property
    def rank(self) -> int:
        """Total order NONE < LOW < MEDIUM < HIGH."""
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    MatchConfidence.NONE: 0,
    MatchConfidence.LOW: 1,
    MatchConfidence.MEDIUM: 2,
    MatchConfidence.HIGH: 3,
}


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one match attempt."""

    confidence: MatchConfidence
    obligation: ScheduledObligation | None = None
    reason: str = ""
    warning: str | None = None

    @property
    def clears_obligation(self) -> bool:
        return self.obligation is not None and self.confidence in (
            MatchConfidence.HIGH,
            MatchConfidence.MEDIUM,
        )


@dataclass
class MatchSummary:
    """Per-tier counts for a batch of match results."""

    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    none: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return self.low > 0 or self.none > 0


def _fmt(amount: Decimal) -> str:
    return f"{amount:.2f}"


def pending_cheques_with_number(
    cheque_number: str,
    obligations: Iterable[ScheduledObligation],
) -> list[ScheduledObligation]:
    number = cheque_number.strip()
    return [
        obligation
        for obligation in obligations
        if obligation.status == ObligationStatus.PENDING
        and obligation.cheque_number
        and obligation.cheque_number.strip() == number
    ]


def match_cheque(
    candidate: CandidateEvent,
    obligations: Iterable[ScheduledObligation],
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> MatchResult:
    """Match a cheque candidate against outstanding obligations."""
    if not candidate.has_cheque_reference:
        return MatchResult(confidence=MatchConfidence.NONE, reason="Not a numbered cheque")

    number = candidate.cheque_number.strip()
    amount = candidate.amount
    matches = pending_cheques_with_number(number, obligations)

    if not matches:
        return MatchResult(
            confidence=MatchConfidence.NONE,
            reason=f"No match for cheque #{number}",
            warning=f"No pending scheduled cheque found with number {number}",
        )

    if len(matches) == 1:
        return _score_single(number, amount, matches[0], config)

    # Several pending cheques share the number; min() keeps the first on ties
    closest = min(matches, key=lambda obligation: abs(obligation.amount - amount))
    difference = abs(closest.amount - amount)
    if difference < config.amount_tolerance:
        return MatchResult(
            confidence=MatchConfidence.HIGH,
            obligation=closest,
            reason=(
                f"Multiple cheques with #{number} found - matched by exact amount "
                f"among duplicates ({_fmt(amount)})"
            ),
        )
    return MatchResult(
        confidence=MatchConfidence.MEDIUM,
        obligation=closest,
        reason=f"Multiple cheques with #{number} found - matched by closest amount",
        warning=(
            f"Multiple pending cheques with #{number}. Matched closest amount "
            f"(expected: {_fmt(closest.amount)}, actual: {_fmt(amount)})"
        ),
    )


def _score_single(
    number: str,
    amount: Decimal,
    obligation: ScheduledObligation,
    config: ReconciliationConfig,
) -> MatchResult:
    scheduled = obligation.amount
    difference = abs(scheduled - amount)

    if difference < config.amount_tolerance:
        return MatchResult(
            confidence=MatchConfidence.HIGH,
            obligation=obligation,
            reason=f"Cheque #{number} matches with exact amount {_fmt(amount)}",
        )

    # A zero scheduled amount has no meaningful percentage; any drift is significant
    within_percent = bool(scheduled) and difference / scheduled * 100 <= config.cheque_medium_percent
    if within_percent:
        return MatchResult(
            confidence=MatchConfidence.MEDIUM,
            obligation=obligation,
            reason=(
                f"Cheque #{number} matches but amount differs slightly "
                f"(expected: {_fmt(scheduled)}, actual: {_fmt(amount)}, diff: {_fmt(difference)})"
            ),
        )

    return MatchResult(
        confidence=MatchConfidence.LOW,
        obligation=obligation,
        reason=f"Cheque #{number} found but amount mismatch is significant",
        warning=(
            f"Expected amount: {_fmt(scheduled)}, but bank statement shows: {_fmt(amount)} "
            f"(difference: {_fmt(difference)})"
        ),
    )


def batch_match_cheques(
    candidates: Sequence[CandidateEvent],
    obligations: Sequence[ScheduledObligation],
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> dict[int, MatchResult]:
    """Match every numbered cheque candidate; keys are batch indices."""
    results: dict[int, MatchResult] = {}
    for index, candidate in enumerate(candidates):
        if not candidate.has_cheque_reference:
            continue
        result = match_cheque(candidate, obligations, config)
        results[index] = result
        logger.info(
            "Cheque match evaluated",
            index=index,
            cheque_number=candidate.cheque_number,
            confidence=result.confidence.value,
            obligation_id=result.obligation.id if result.obligation else None,
        )
    return results


def summarize_matches(results: Mapping[int, MatchResult]) -> MatchSummary:
    summary = MatchSummary(total=len(results))
    for result in results.values():
        if result.confidence is MatchConfidence.HIGH:
            summary.high += 1
        elif result.confidence is MatchConfidence.MEDIUM:
            summary.medium += 1
        elif result.confidence is MatchConfidence.LOW:
            summary.low += 1
        else:
            summary.none += 1
        if result.warning and result.confidence is not MatchConfidence.HIGH:
            summary.warnings.append(result.warning)
    return summary
