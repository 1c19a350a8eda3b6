"""Balance discrepancy detection and adjustment-entry synthesis.

A discrepancy is the gap between the balance a bank message reports and the
balance implied by stored history plus the new transaction. Instead of
silently overwriting history, the gap is booked as an explicit adjustment
entry in the reserved ``Unknown`` category so the ledger keeps explaining the
account balance.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from finsnap.logger import get_logger
from finsnap.models import UNKNOWN_CATEGORY_NAME, Account, Transaction, TransactionKind
from finsnap.schemas.candidate import CandidateEvent, SnapshotMeta
from finsnap.services.balance_inference import resolve_snapshot_balance
from finsnap.services.chronology import chronological_key
from finsnap.services.reconciliation_config import DEFAULT_CONFIG, ReconciliationConfig

logger = get_logger(__name__)

DISCREPANCY_MERCHANT = "Balance Discrepancy Detected"
MANUAL_ADJUSTMENT_MERCHANT = "Manual Balance Adjustment"

HEALTH_MIN_THRESHOLD = Decimal("100")
HEALTH_THRESHOLD_RATIO = Decimal("0.05")


@dataclass(frozen=True)
class AdjustmentSuggestion:
    """A detected gap between the observed and the expected account balance."""

    account_id: str
    expected_balance: Decimal
    observed_balance: Decimal
    # observed - expected; positive means money the ledger does not know about
    difference: Decimal
    trigger_id: str | None = None
    trigger_date: date | None = None
    trigger_time: str | None = None

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.INCOME if self.difference > 0 else TransactionKind.EXPENSE

    @property
    def amount(self) -> Decimal:
        return abs(self.difference)

    def to_candidate(self, currency: str) -> CandidateEvent:
        return CandidateEvent(
            amount=self.amount,
            currency=currency,
            merchant=DISCREPANCY_MERCHANT,
            txn_date=self.trigger_date or date.today(),
            txn_time=self.trigger_time,
            category=UNKNOWN_CATEGORY_NAME,
            kind=self.kind,
            account_id=self.account_id,
            snapshot_meta=SnapshotMeta(available_balance=self.observed_balance),
            raw_text=(
                f"Auto-created due to {currency} {self.amount:.2f} difference between "
                f"parsed balance ({self.observed_balance:.2f}) and calculated balance "
                f"({self.expected_balance:.2f})"
            ),
            is_adjustment=True,
        )


def is_latest_for_account(transaction: Transaction, all_transactions: Iterable[Transaction]) -> bool:
    """True when no other transaction of the same account is strictly later."""
    key = chronological_key(transaction)
    for other in all_transactions:
        if other.account_id != transaction.account_id or other.id == transaction.id:
            continue
        if chronological_key(other) > key:
            return False
    return True


def detect_discrepancy(
    transaction: Transaction,
    account: Account,
    all_transactions: Iterable[Transaction],
    *,
    balance_before: Decimal | None = None,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> AdjustmentSuggestion | None:
    """Compare a transaction's balance snapshot with the balance history implies.

    Only the chronologically latest transaction of the account is checked: a
    snapshot from the past says nothing about today's balance. ``balance_before``
    is the account balance right before the transaction was applied; it
    defaults to the stored balance.
    """
    observed = transaction.available_balance
    if observed is None:
        return None
    if transaction.account_id is None or transaction.account_id != account.id:
        return None
    if not is_latest_for_account(transaction, all_transactions):
        logger.debug(
            "Skipped discrepancy check for backdated transaction",
            transaction_id=transaction.id,
            account_id=account.id,
        )
        return None

    before = Decimal(account.balance) if balance_before is None else Decimal(balance_before)
    # Transfers touch two accounts; only the snapshot is compared, not their own effect
    if transaction.is_transfer:
        expected = before
    else:
        expected = before + transaction.kind.balance_effect(Decimal(transaction.amount))
    difference = Decimal(observed) - expected
    if abs(difference) < config.amount_tolerance:
        return None

    logger.warning(
        "Balance discrepancy detected",
        transaction_id=transaction.id,
        account_id=account.id,
        expected_balance=str(expected),
        observed_balance=str(observed),
        difference=str(difference),
    )
    return AdjustmentSuggestion(
        account_id=account.id,
        expected_balance=expected,
        observed_balance=Decimal(observed),
        difference=difference,
        trigger_id=transaction.id,
        trigger_date=transaction.txn_date,
        trigger_time=transaction.txn_time,
    )


def build_discrepancy_adjustment(
    suggestion: AdjustmentSuggestion,
    account: Account,
    trigger: Transaction,
) -> CandidateEvent:
    """Adjustment entry placed at the trigger's timestamp."""
    dated = AdjustmentSuggestion(
        account_id=suggestion.account_id,
        expected_balance=suggestion.expected_balance,
        observed_balance=suggestion.observed_balance,
        difference=suggestion.difference,
        trigger_id=trigger.id,
        trigger_date=trigger.txn_date,
        trigger_time=trigger.txn_time,
    )
    return dated.to_candidate(account.currency)


def build_manual_adjustment(
    account: Account,
    target_balance: Decimal,
    on_date: date,
    at_time: str | None = None,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> CandidateEvent | None:
    """Adjustment entry that moves the account to a user-entered balance.

    Returns None when the target already equals the current balance.
    """
    current = Decimal(account.balance)
    target = Decimal(target_balance)
    difference = target - current
    if abs(difference) < config.amount_tolerance:
        return None

    return CandidateEvent(
        amount=abs(difference),
        currency=account.currency,
        merchant=MANUAL_ADJUSTMENT_MERCHANT,
        txn_date=on_date,
        txn_time=at_time,
        category=UNKNOWN_CATEGORY_NAME,
        kind=TransactionKind.INCOME if difference > 0 else TransactionKind.EXPENSE,
        account_id=account.id,
        snapshot_meta=SnapshotMeta(available_balance=target),
        raw_text=(
            f"Balance adjusted from {account.currency} {current:.2f} "
            f"to {account.currency} {target:.2f}"
        ),
        is_adjustment=True,
    )


# =============================================================================
# Account health
# =============================================================================


class HealthSeverity(str, enum.Enum):
    NONE = "NONE"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class AccountHealth:
    account_id: str
    needs_reconciliation: bool
    severity: HealthSeverity
    current_balance: Decimal
    expected_balance: Decimal
    difference: Decimal
    snapshot_transaction_id: str | None = None


def _grade(difference: Decimal, balance: Decimal) -> HealthSeverity:
    if not balance:
        return HealthSeverity.CRITICAL
    percent = difference / abs(balance) * 100
    if difference > 500 or percent > 10:
        return HealthSeverity.CRITICAL
    if difference > 200 or percent > 5:
        return HealthSeverity.MAJOR
    return HealthSeverity.MINOR


def assess_account_health(account: Account, transactions: Iterable[Transaction]) -> AccountHealth:
    """Replay transactions after the latest snapshot and grade the drift.

    The expected balance is the latest snapshot plus the deltas of every later
    transaction of the account. Drift up to ``max(100, 5% of balance)`` is
    considered healthy.
    """
    own = [txn for txn in transactions if txn.account_id == account.id]
    current = Decimal(account.balance)

    anchor: Transaction | None = None
    anchor_balance: Decimal | None = None
    for txn in sorted(own, key=chronological_key, reverse=True):
        anchor_balance = resolve_snapshot_balance(
            txn.available_balance, txn.available_credit, account.credit_limit
        )
        if anchor_balance is not None:
            anchor = txn
            break

    if anchor is None or anchor_balance is None:
        return AccountHealth(
            account_id=account.id,
            needs_reconciliation=False,
            severity=HealthSeverity.NONE,
            current_balance=current,
            expected_balance=current,
            difference=Decimal("0"),
        )

    anchor_key = chronological_key(anchor)
    expected = anchor_balance + sum(
        (
            txn.kind.balance_effect(Decimal(txn.amount))
            for txn in own
            if txn.id != anchor.id and chronological_key(txn) > anchor_key
        ),
        Decimal("0"),
    )
    difference = abs(current - expected)
    # Liabilities have a negative balance, so they always get the absolute floor
    threshold = max(HEALTH_MIN_THRESHOLD, current * HEALTH_THRESHOLD_RATIO)
    needs_reconciliation = difference > threshold

    return AccountHealth(
        account_id=account.id,
        needs_reconciliation=needs_reconciliation,
        severity=_grade(difference, current) if needs_reconciliation else HealthSeverity.NONE,
        current_balance=current,
        expected_balance=expected,
        difference=difference,
        snapshot_transaction_id=anchor.id,
    )
