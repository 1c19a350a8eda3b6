"""Sanity checks for a series of post-dated cheques.

Issues are reported, never enforced: an invalid series can still be saved.
"""

from __future__ import annotations

import enum
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from finsnap.models import ScheduledObligation
from finsnap.services.reconciliation_config import DEFAULT_CONFIG, ReconciliationConfig
from finsnap.utils.dates import add_months


class IssueSeverity(str, enum.Enum):
    """Severity of a validation issue; only ERROR makes a series invalid."""

    ERROR = "ERROR"
    WARNING = "WARNING"

    @property
    def rank(self) -> int:
        return 2 if self is IssueSeverity.ERROR else 1


class IssueCategory(str, enum.Enum):
    NUMBERING = "NUMBERING"
    DATE = "DATE"


@dataclass(frozen=True)
class ValidationIssue:
    severity: IssueSeverity
    category: IssueCategory
    obligation_id: str
    cheque_number: str | None
    message: str


@dataclass(frozen=True)
class SeriesValidationResult:
    is_valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    has_numbering_issues: bool = False
    has_date_issues: bool = False

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is IssueSeverity.ERROR]


def parse_cheque_number(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _series_key(obligation: ScheduledObligation) -> tuple:
    # Cheque number breaks due-date ties so results never depend on input order
    number = parse_cheque_number(obligation.cheque_number)
    return (
        obligation.due_date,
        number is None,
        number or 0,
        obligation.cheque_number or "",
        obligation.id or "",
    )


def sort_series(obligations: Iterable[ScheduledObligation]) -> list[ScheduledObligation]:
    return sorted(obligations, key=_series_key)


def validate_series(
    obligations: Sequence[ScheduledObligation],
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> SeriesValidationResult:
    """Validate numbering and date progression of a cheque series."""
    if not obligations:
        return SeriesValidationResult(is_valid=True)

    ordered = sort_series(obligations)
    issues: list[ValidationIssue] = []
    issues.extend(_check_numbering(ordered, config))
    issues.extend(_check_dates(ordered, config))
    issues.extend(_check_duplicate_numbers(ordered))

    return SeriesValidationResult(
        is_valid=not any(issue.severity is IssueSeverity.ERROR for issue in issues),
        issues=issues,
        has_numbering_issues=any(issue.category is IssueCategory.NUMBERING for issue in issues),
        has_date_issues=any(issue.category is IssueCategory.DATE for issue in issues),
    )


def _check_numbering(
    ordered: list[ScheduledObligation],
    config: ReconciliationConfig,
) -> list[ValidationIssue]:
    numbered = [
        (obligation, parse_cheque_number(obligation.cheque_number))
        for obligation in ordered
        if parse_cheque_number(obligation.cheque_number) is not None
    ]
    issues: list[ValidationIssue] = []
    for (current, current_num), (following, next_num) in zip(numbered, numbered[1:]):
        if next_num < current_num:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    category=IssueCategory.NUMBERING,
                    obligation_id=following.id,
                    cheque_number=following.cheque_number,
                    message=(
                        f"Cheque #{following.cheque_number} has a lower number than "
                        f"previous cheque #{current.cheque_number}"
                    ),
                )
            )
            continue

        gap = next_num - current_num
        if gap > config.series_gap_warning:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    category=IssueCategory.NUMBERING,
                    obligation_id=following.id,
                    cheque_number=following.cheque_number,
                    message=(
                        f"Large gap in cheque numbering: #{current.cheque_number} to "
                        f"#{following.cheque_number} ({gap - 1} numbers skipped)"
                    ),
                )
            )
    return issues


def _check_duplicate_numbers(ordered: list[ScheduledObligation]) -> list[ValidationIssue]:
    by_number: dict[str, list[ScheduledObligation]] = defaultdict(list)
    for obligation in ordered:
        if obligation.cheque_number and obligation.cheque_number.strip():
            by_number[obligation.cheque_number.strip()].append(obligation)

    issues: list[ValidationIssue] = []
    for number, sharing in by_number.items():
        if len(sharing) < 2:
            continue
        for obligation in sharing:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    category=IssueCategory.NUMBERING,
                    obligation_id=obligation.id,
                    cheque_number=number,
                    message=f"Duplicate cheque number: #{number} appears {len(sharing)} times",
                )
            )
    return issues


def _interval_days(earlier: date, later: date) -> int:
    return (later - earlier).days


def _check_dates(
    ordered: list[ScheduledObligation],
    config: ReconciliationConfig,
) -> list[ValidationIssue]:
    if len(ordered) < 2:
        return []

    pairs = list(zip(ordered, ordered[1:]))
    samples = [
        _interval_days(current.due_date, following.due_date)
        for current, following in pairs[: config.series_sample_intervals]
    ]
    average = Decimal(sum(samples)) / len(samples)
    tolerance = max(
        Decimal(config.series_min_date_tolerance_days),
        average * config.series_date_tolerance_ratio,
    )

    issues: list[ValidationIssue] = []
    for current, following in pairs:
        days = _interval_days(current.due_date, following.due_date)
        if days < 0:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    category=IssueCategory.DATE,
                    obligation_id=following.id,
                    cheque_number=following.cheque_number,
                    message=(
                        f"Cheque date {following.due_date.isoformat()} is before previous "
                        f"cheque date {current.due_date.isoformat()}"
                    ),
                )
            )
        elif days == 0:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    category=IssueCategory.DATE,
                    obligation_id=following.id,
                    cheque_number=following.cheque_number,
                    message=f"Two cheques have the same date: {current.due_date.isoformat()}",
                )
            )
        elif len(samples) >= 2 and abs(days - average) > tolerance:
            expected = average.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    category=IssueCategory.DATE,
                    obligation_id=following.id,
                    cheque_number=following.cheque_number,
                    message=f"Unusual date interval: {days} days (expected ~{expected} days)",
                )
            )
    return issues


def suggest_next_cheque_number(obligations: Iterable[ScheduledObligation]) -> str | None:
    """Highest parseable cheque number in the series plus one."""
    numbers = [
        number
        for number in (parse_cheque_number(o.cheque_number) for o in obligations)
        if number is not None
    ]
    if not numbers:
        return None
    return str(max(numbers) + 1)


def suggest_next_due_date(obligations: Iterable[ScheduledObligation]) -> date | None:
    """Last due date plus the average of the most recent intervals.

    With a single obligation there is no interval to learn from, so the
    suggestion falls back to one calendar month later.
    """
    ordered = sort_series(obligations)
    if not ordered:
        return None

    last = ordered[-1].due_date
    if len(ordered) < 2:
        return add_months(last, 1)

    recent = ordered[-4:]
    intervals = [_interval_days(a.due_date, b.due_date) for a, b in zip(recent, recent[1:])]
    average = (Decimal(sum(intervals)) / len(intervals)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return last + timedelta(days=int(average))
