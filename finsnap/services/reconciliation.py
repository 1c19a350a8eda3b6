"""Reconciliation engine: the public operations over the record store.

``reconcile_batch`` is read-only: it proposes cleaned candidates and cheque
matches. Nothing is written until the user confirms and ``commit`` runs.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from finsnap.logger import get_logger, log_exception, log_timing
from finsnap.models import Account, ObligationStatus, ScheduledObligation, Transaction
from finsnap.models.base import new_id
from finsnap.schemas.candidate import CandidateEvent
from finsnap.schemas.obligation import ObligationSeriesParams
from finsnap.services import cheque_validation, obligations as obligation_service
from finsnap.services.balance_inference import infer_amounts
from finsnap.services.balance_updater import apply_transaction
from finsnap.services.cheque_matching import (
    MatchResult,
    MatchSummary,
    batch_match_cheques,
    summarize_matches,
)
from finsnap.services.cheque_pairing import PairingCandidate, can_pair, find_pairing_candidates
from finsnap.services.chronology import chronological_key, sort_chronologically
from finsnap.services.deduplication import filter_duplicates
from finsnap.services.discrepancy import (
    AccountHealth,
    AdjustmentSuggestion,
    assess_account_health,
    build_discrepancy_adjustment,
    build_manual_adjustment,
)
from finsnap.services.discrepancy import detect_discrepancy as find_discrepancy
from finsnap.services.obligations import InsufficientFundsWarning, check_insufficient_funds, mark_cleared
from finsnap.services.reconciliation_config import ReconciliationConfig, load_reconciliation_config
from finsnap.services.store import EntityKind, RecordNotFoundError, RecordStore, ensure_unknown_category

logger = get_logger(__name__)


class ReconciliationError(Exception):
    """Raised when an engine operation cannot be carried out."""

    pass


@dataclass(frozen=True)
class ReconcileContext:
    """Store snapshot a batch is reconciled against; read from the store when omitted."""

    accounts: list[Account]
    transactions: list[Transaction]
    obligations: list[ScheduledObligation]


@dataclass
class ReconcileResult:
    confirmed: list[CandidateEvent] = field(default_factory=list)
    duplicates_skipped: int = 0
    # Keyed by index into ``confirmed``
    matches: dict[int, MatchResult] = field(default_factory=dict)

    @property
    def summary(self) -> MatchSummary:
        return summarize_matches(self.matches)


@dataclass
class CommitJournal:
    """Writes made by one commit, kept so a failure midway can be undone."""

    transaction_ids: list[str] = field(default_factory=list)
    # Balance of each touched account before the commit started
    balances: dict[str, Decimal] = field(default_factory=dict)
    cleared_obligation_ids: list[str] = field(default_factory=list)


def to_transaction(candidate: CandidateEvent) -> Transaction:
    """Give a confirmed candidate its permanent identity."""
    return Transaction(
        id=new_id(),
        amount=candidate.amount,
        currency=candidate.currency,
        original_amount=candidate.original_amount,
        original_currency=candidate.original_currency,
        exchange_rate=candidate.exchange_rate,
        extracted_amount=candidate.extracted_amount,
        merchant=candidate.merchant,
        txn_date=candidate.txn_date,
        txn_time=candidate.txn_time,
        category=candidate.category,
        kind=candidate.kind,
        account_id=candidate.account_id,
        is_transfer=candidate.is_transfer,
        is_cheque=candidate.is_cheque,
        cheque_number=candidate.cheque_number,
        snapshot_available_balance=candidate.available_balance,
        snapshot_available_credit=candidate.available_credit,
        raw_text=candidate.raw_text,
        is_adjustment=candidate.is_adjustment,
    )


class ReconciliationEngine:
    """Reconciles extracted candidates against the stored account state."""

    def __init__(self, store: RecordStore, config: ReconciliationConfig | None = None) -> None:
        self.store = store
        self.config = config or load_reconciliation_config()

    def _context(self) -> ReconcileContext:
        return ReconcileContext(
            accounts=self.store.get_all(EntityKind.ACCOUNT),
            transactions=self.store.get_all(EntityKind.TRANSACTION),
            obligations=self.store.get_all(EntityKind.OBLIGATION),
        )

    def _get_or_raise(self, kind: EntityKind, record_id: str):
        record = self.store.get(kind, record_id)
        if record is None:
            raise RecordNotFoundError(kind, record_id)
        return record

    # -------------------------------------------------------------------------
    # Batch pipeline
    # -------------------------------------------------------------------------

    def reconcile_batch(
        self,
        candidates: Sequence[CandidateEvent],
        context: ReconcileContext | None = None,
    ) -> ReconcileResult:
        """Sort, de-duplicate, infer amounts and match cheques for one batch."""
        context = context or self._context()
        with log_timing("reconcile_batch", logger=logger, candidates=len(candidates)) as timing:
            ordered = sort_chronologically(candidates)
            filtered = filter_duplicates(ordered, context.transactions, self.config.amount_tolerance)
            confirmed = infer_amounts(filtered.unique, context.accounts, self.config)
            matches = batch_match_cheques(confirmed, context.obligations, self.config)
            timing["duplicates_skipped"] = filtered.duplicates_skipped
            timing["cheque_matches"] = len(matches)

        return ReconcileResult(
            confirmed=confirmed,
            duplicates_skipped=filtered.duplicates_skipped,
            matches=matches,
        )

    def commit(
        self,
        confirmed: Sequence[CandidateEvent],
        matches: dict[int, MatchResult] | None = None,
        *,
        reconcile_balances: bool = True,
    ) -> list[Transaction]:
        """Persist user-confirmed candidates, oldest first.

        Returns the committed transactions followed, after each trigger, by any
        adjustment entry synthesized for it. The batch is all-or-nothing: unknown
        accounts are rejected before the first write, and a write that fails
        midway undoes the writes already made before the error propagates.
        """
        self._check_accounts(confirmed)
        if matches is None:
            matches = batch_match_cheques(
                confirmed, self.store.get_all(EntityKind.OBLIGATION), self.config
            )

        order = sorted(range(len(confirmed)), key=lambda i: chronological_key(confirmed[i]))
        committed: list[Transaction] = []
        journal = CommitJournal()
        with log_timing("commit", logger=logger, candidates=len(confirmed)) as timing:
            try:
                for index in order:
                    committed.extend(
                        self._commit_one(
                            confirmed[index], matches.get(index), reconcile_balances, journal
                        )
                    )
            except Exception as exc:
                log_exception(
                    logger,
                    exc,
                    "Commit failed, undoing partial writes",
                    written=len(journal.transaction_ids),
                    requested=len(confirmed),
                )
                timing["orphaned"] = len(self._undo(journal))
                raise
            timing["committed"] = len(committed)
            timing["adjustments"] = sum(1 for txn in committed if txn.is_adjustment)
        return committed

    def _check_accounts(self, confirmed: Sequence[CandidateEvent]) -> None:
        for account_id in dict.fromkeys(c.account_id for c in confirmed if c.account_id):
            self._get_or_raise(EntityKind.ACCOUNT, account_id)

    def _undo(self, journal: CommitJournal) -> list[str]:
        """Compensate a failed commit; returns ids of records that could not be restored."""
        orphaned: list[str] = []
        for transaction_id in reversed(journal.transaction_ids):
            try:
                self.store.delete(EntityKind.TRANSACTION, transaction_id)
            except Exception as delete_exc:
                orphaned.append(transaction_id)
                log_exception(
                    logger,
                    delete_exc,
                    "Failed to undo transaction",
                    level="warning",
                    include_traceback=False,
                    transaction_id=transaction_id,
                )

        for account_id, balance in journal.balances.items():
            try:
                account = self._get_or_raise(EntityKind.ACCOUNT, account_id)
                account.balance = balance
                self.store.put(EntityKind.ACCOUNT, account)
            except Exception as restore_exc:
                orphaned.append(account_id)
                log_exception(
                    logger,
                    restore_exc,
                    "Failed to restore account balance",
                    level="warning",
                    include_traceback=False,
                    account_id=account_id,
                )

        for obligation_id in journal.cleared_obligation_ids:
            try:
                obligation = self._get_or_raise(EntityKind.OBLIGATION, obligation_id)
                obligation.status = ObligationStatus.PENDING
                obligation.matched_transaction_id = None
                obligation.cleared_date = None
                self.store.put(EntityKind.OBLIGATION, obligation)
            except Exception as restore_exc:
                orphaned.append(obligation_id)
                log_exception(
                    logger,
                    restore_exc,
                    "Failed to reopen obligation",
                    level="warning",
                    include_traceback=False,
                    obligation_id=obligation_id,
                )
        return orphaned

    def _commit_one(
        self,
        candidate: CandidateEvent,
        match: MatchResult | None,
        reconcile_balances: bool,
        journal: CommitJournal,
    ) -> list[Transaction]:
        account: Account | None = None
        if candidate.account_id:
            account = self._get_or_raise(EntityKind.ACCOUNT, candidate.account_id)
        if candidate.is_adjustment:
            ensure_unknown_category(self.store)

        transaction = to_transaction(candidate)
        balance_before = Decimal(account.balance) if account is not None else None

        obligation = self._obligation_to_clear(match)
        if obligation is not None:
            transaction.obligation_id = obligation.id

        self.store.put(EntityKind.TRANSACTION, transaction)
        journal.transaction_ids.append(transaction.id)
        if account is not None:
            journal.balances.setdefault(account.id, balance_before)
            if apply_transaction(account, transaction) is not None:
                self.store.put(EntityKind.ACCOUNT, account)
        if obligation is not None:
            mark_cleared(obligation, transaction.id, transaction.txn_date)
            journal.cleared_obligation_ids.append(obligation.id)
            self.store.put(EntityKind.OBLIGATION, obligation)

        results = [transaction]
        # Adjustment entries carry the observed balance; checking them again would loop
        if reconcile_balances and account is not None and not transaction.is_adjustment:
            suggestion = find_discrepancy(
                transaction,
                account,
                self.store.get_all(EntityKind.TRANSACTION),
                balance_before=balance_before,
                config=self.config,
            )
            if suggestion is not None:
                adjustment = build_discrepancy_adjustment(suggestion, account, transaction)
                results.extend(
                    self._commit_one(adjustment, None, reconcile_balances=False, journal=journal)
                )
                logger.info(
                    "Adjustment entry committed",
                    account_id=account.id,
                    trigger_id=transaction.id,
                    difference=str(suggestion.difference),
                )
        return results

    def _obligation_to_clear(self, match: MatchResult | None) -> ScheduledObligation | None:
        if match is None or not match.clears_obligation:
            return None
        # Re-read: an earlier entry of the same batch may have cleared it already
        obligation = self.store.get(EntityKind.OBLIGATION, match.obligation.id)
        if obligation is None or obligation.status != ObligationStatus.PENDING:
            logger.warning(
                "Matched obligation is no longer pending",
                obligation_id=match.obligation.id,
            )
            return None
        return obligation

    # -------------------------------------------------------------------------
    # Single-purpose operations
    # -------------------------------------------------------------------------

    def detect_discrepancy(
        self,
        transaction: Transaction,
        account: Account,
        all_transactions: Sequence[Transaction],
    ) -> AdjustmentSuggestion | None:
        return find_discrepancy(transaction, account, all_transactions, config=self.config)

    def validate_series(
        self, obligations: Sequence[ScheduledObligation]
    ) -> cheque_validation.SeriesValidationResult:
        return cheque_validation.validate_series(obligations, self.config)

    def create_obligation_series(self, params: ObligationSeriesParams) -> list[ScheduledObligation]:
        return obligation_service.create_obligation_series(self.store, params)

    def adjust_balance(
        self,
        account_id: str,
        target_balance: Decimal,
        on_date: date | None = None,
        at_time: str | None = None,
    ) -> Transaction | None:
        """Book a manual adjustment that moves the account to ``target_balance``.

        Works for accounts that opted out of automatic updates; returns None
        when the balance already matches.
        """
        account: Account = self._get_or_raise(EntityKind.ACCOUNT, account_id)
        candidate = build_manual_adjustment(
            account, target_balance, on_date or date.today(), at_time, self.config
        )
        if candidate is None:
            return None

        ensure_unknown_category(self.store)
        transaction = to_transaction(candidate)
        old_balance = Decimal(account.balance)
        self.store.put(EntityKind.TRANSACTION, transaction)
        account.balance = Decimal(target_balance)
        self.store.put(EntityKind.ACCOUNT, account)
        logger.info(
            "Manual balance adjustment",
            account_id=account.id,
            old_balance=str(old_balance),
            new_balance=str(account.balance),
            transaction_id=transaction.id,
        )
        return transaction

    def pairing_candidates(self, obligation_id: str) -> list[PairingCandidate]:
        obligation: ScheduledObligation = self._get_or_raise(EntityKind.OBLIGATION, obligation_id)
        return find_pairing_candidates(
            obligation,
            self.store.get_all(EntityKind.TRANSACTION),
            self.store.get_all(EntityKind.OBLIGATION),
        )

    def pair_obligation(self, obligation_id: str, transaction_id: str) -> ScheduledObligation:
        """Clear an obligation against a transaction the user picked by hand."""
        obligation: ScheduledObligation = self._get_or_raise(EntityKind.OBLIGATION, obligation_id)
        transaction: Transaction = self._get_or_raise(EntityKind.TRANSACTION, transaction_id)

        ok, reason = can_pair(transaction, obligation, self.store.get_all(EntityKind.OBLIGATION))
        if not ok:
            raise ReconciliationError(reason)

        mark_cleared(obligation, transaction.id, transaction.txn_date)
        transaction.obligation_id = obligation.id
        self.store.put(EntityKind.OBLIGATION, obligation)
        self.store.put(EntityKind.TRANSACTION, transaction)
        return obligation

    def insufficient_funds_warnings(
        self, today: date | None = None, days_ahead: int = 30
    ) -> list[InsufficientFundsWarning]:
        today = today or date.today()
        pending = self.store.get_all(EntityKind.OBLIGATION)
        warnings = []
        for account in self.store.get_all(EntityKind.ACCOUNT):
            warning = check_insufficient_funds(account, pending, today, days_ahead)
            if warning is not None:
                warnings.append(warning)
        return warnings

    def account_health(self) -> list[AccountHealth]:
        transactions = self.store.get_all(EntityKind.TRANSACTION)
        return [
            assess_account_health(account, transactions)
            for account in self.store.get_all(EntityKind.ACCOUNT)
        ]
