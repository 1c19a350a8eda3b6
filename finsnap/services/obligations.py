"""Scheduled obligation services: cheque series creation, clearing, funding checks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from finsnap.logger import get_logger, log_exception
from finsnap.models import (
    Account,
    ObligationStatus,
    ScheduledObligation,
    TransactionKind,
)
from finsnap.models.base import new_id
from finsnap.schemas.obligation import ObligationSeriesParams, SeriesFrequency
from finsnap.services.store import EntityKind, RecordStore
from finsnap.utils.dates import add_months

logger = get_logger(__name__)


class ObligationSeriesError(Exception):
    """Raised when a series could not be created; partial writes were rolled back."""

    def __init__(self, message: str, *, series_id: str, rolled_back: int, orphaned: list[str]):
        self.series_id = series_id
        self.rolled_back = rolled_back
        self.orphaned = orphaned
        super().__init__(message)


class ObligationStateError(Exception):
    """Raised on an invalid obligation lifecycle transition."""

    pass


def due_date_at(first_due_date: date, index: int, frequency: SeriesFrequency, interval: int) -> date:
    if frequency is SeriesFrequency.MONTHLY:
        return add_months(first_due_date, index * interval)
    if frequency is SeriesFrequency.WEEKLY:
        return first_due_date + timedelta(weeks=index * interval)
    return first_due_date + timedelta(days=index * interval)


def preview_due_dates(
    first_due_date: date,
    frequency: SeriesFrequency,
    interval: int,
    count: int,
) -> list[date]:
    return [due_date_at(first_due_date, i, frequency, interval) for i in range(count)]


def build_series(params: ObligationSeriesParams, series_id: str) -> list[ScheduledObligation]:
    due_dates = preview_due_dates(params.first_due_date, params.frequency, params.interval, params.count)
    return [
        ScheduledObligation(
            id=new_id(),
            merchant=params.merchant,
            amount=params.amount,
            currency=params.currency,
            category=params.category,
            kind=TransactionKind.EXPENSE,
            account_id=params.account_id,
            due_date=due_date,
            status=ObligationStatus.PENDING,
            is_cheque=True,
            cheque_number=(
                str(params.starting_cheque_number + index)
                if params.starting_cheque_number is not None
                else None
            ),
            series_id=series_id,
            notes=f"Cheque #{index + 1} of {params.count}",
        )
        for index, due_date in enumerate(due_dates)
    ]


def create_obligation_series(store: RecordStore, params: ObligationSeriesParams) -> list[ScheduledObligation]:
    """Persist a cheque series all-or-nothing.

    The store has no multi-record transactions, so every successful write is
    tracked and deleted again if a later one fails. Failed deletes are logged
    and reported on the raised error; they never replace the original cause.
    """
    series_id = new_id()
    created: list[ScheduledObligation] = []

    try:
        for obligation in build_series(params, series_id):
            store.put(EntityKind.OBLIGATION, obligation)
            created.append(obligation)
    except Exception as exc:
        log_exception(
            logger,
            exc,
            "Obligation series creation failed, rolling back",
            series_id=series_id,
            created=len(created),
            requested=params.count,
        )
        orphaned = _roll_back(store, created, series_id)
        raise ObligationSeriesError(
            f"Failed to create cheque series after {len(created)} of {params.count} cheques: {exc}",
            series_id=series_id,
            rolled_back=len(created) - len(orphaned),
            orphaned=orphaned,
        ) from exc

    logger.info(
        "Obligation series created",
        series_id=series_id,
        count=len(created),
        frequency=params.frequency.value,
        account_id=params.account_id,
    )
    return created


def _roll_back(store: RecordStore, created: list[ScheduledObligation], series_id: str) -> list[str]:
    orphaned: list[str] = []
    for obligation in created:
        try:
            store.delete(EntityKind.OBLIGATION, obligation.id)
        except Exception as delete_exc:
            orphaned.append(obligation.id)
            log_exception(
                logger,
                delete_exc,
                "Failed to roll back obligation",
                level="warning",
                include_traceback=False,
                series_id=series_id,
                obligation_id=obligation.id,
            )
    return orphaned


def mark_cleared(obligation: ScheduledObligation, transaction_id: str, cleared_on: date) -> ScheduledObligation:
    """PENDING -> CLEARED, linking the transaction that settled the obligation."""
    if obligation.status != ObligationStatus.PENDING:
        raise ObligationStateError(
            f"Obligation {obligation.id} is {obligation.status.value}, only PENDING can be cleared"
        )
    obligation.status = ObligationStatus.CLEARED
    obligation.matched_transaction_id = transaction_id
    obligation.cleared_date = cleared_on
    logger.info(
        "Obligation cleared",
        obligation_id=obligation.id,
        transaction_id=transaction_id,
        cheque_number=obligation.cheque_number,
    )
    return obligation


@dataclass(frozen=True)
class InsufficientFundsWarning:
    account_id: str
    account_name: str
    current_balance: Decimal
    upcoming_obligations: Decimal
    shortage: Decimal
    days_until_first: int
    affected_obligations: list[ScheduledObligation] = field(default_factory=list)


def check_insufficient_funds(
    account: Account,
    obligations: Iterable[ScheduledObligation],
    today: date,
    days_ahead: int = 30,
) -> InsufficientFundsWarning | None:
    """Warn when pending obligations due soon exceed the account balance."""
    horizon = today + timedelta(days=days_ahead)
    upcoming = sorted(
        (
            obligation
            for obligation in obligations
            if obligation.account_id == account.id
            and obligation.status == ObligationStatus.PENDING
            and today <= obligation.due_date <= horizon
        ),
        key=lambda obligation: obligation.due_date,
    )
    if not upcoming:
        return None

    total = sum((Decimal(obligation.amount) for obligation in upcoming), Decimal("0"))
    projected = Decimal(account.balance) - total
    if projected >= 0:
        return None

    return InsufficientFundsWarning(
        account_id=account.id,
        account_name=account.name,
        current_balance=Decimal(account.balance),
        upcoming_obligations=total,
        shortage=abs(projected),
        days_until_first=(upcoming[0].due_date - today).days,
        affected_obligations=upcoming,
    )
