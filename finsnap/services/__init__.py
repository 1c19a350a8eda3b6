"""Services package."""

from finsnap.services.balance_inference import (
    AccountState,
    BalanceState,
    infer_amounts,
    infer_step,
    resolve_snapshot_balance,
    seed_balance_state,
)
from finsnap.services.balance_updater import BalanceUpdate, BalanceUpdateMethod, apply_transaction
from finsnap.services.cheque_matching import (
    MatchConfidence,
    MatchResult,
    MatchSummary,
    batch_match_cheques,
    match_cheque,
    summarize_matches,
)
from finsnap.services.cheque_pairing import (
    PairingCandidate,
    can_pair,
    find_pairing_candidates,
    pairing_confidence,
)
from finsnap.services.cheque_validation import (
    IssueCategory,
    IssueSeverity,
    SeriesValidationResult,
    ValidationIssue,
    suggest_next_cheque_number,
    suggest_next_due_date,
    validate_series,
)
from finsnap.services.chronology import sort_chronologically
from finsnap.services.deduplication import DuplicateFilterResult, filter_duplicates, is_duplicate
from finsnap.services.discrepancy import (
    AccountHealth,
    AdjustmentSuggestion,
    HealthSeverity,
    assess_account_health,
    build_discrepancy_adjustment,
    build_manual_adjustment,
    detect_discrepancy,
    is_latest_for_account,
)
from finsnap.services.extraction import (
    CandidateValidationError,
    ExtractionContext,
    ExtractionError,
    ExtractionRequest,
    ExtractionService,
    Extractor,
)
from finsnap.services.obligations import (
    InsufficientFundsWarning,
    ObligationSeriesError,
    ObligationStateError,
    check_insufficient_funds,
    create_obligation_series,
    mark_cleared,
    preview_due_dates,
)
from finsnap.services.reconciliation_config import (
    DEFAULT_CONFIG,
    ReconciliationConfig,
    load_reconciliation_config,
)
from finsnap.services.store import (
    EntityKind,
    RecordNotFoundError,
    RecordStore,
    ReservedCategoryError,
    SqlAlchemyRecordStore,
    StoreError,
    ensure_unknown_category,
)
from finsnap.services.reconciliation import (  # noqa: I001
    ReconcileContext,
    ReconcileResult,
    ReconciliationEngine,
    ReconciliationError,
)

__all__ = [
    "AccountHealth",
    "AccountState",
    "AdjustmentSuggestion",
    "BalanceState",
    "BalanceUpdate",
    "BalanceUpdateMethod",
    "CandidateValidationError",
    "DEFAULT_CONFIG",
    "DuplicateFilterResult",
    "EntityKind",
    "ExtractionContext",
    "ExtractionError",
    "ExtractionRequest",
    "ExtractionService",
    "Extractor",
    "HealthSeverity",
    "InsufficientFundsWarning",
    "IssueCategory",
    "IssueSeverity",
    "MatchConfidence",
    "MatchResult",
    "MatchSummary",
    "ObligationSeriesError",
    "ObligationStateError",
    "PairingCandidate",
    "ReconcileContext",
    "ReconcileResult",
    "ReconciliationConfig",
    "ReconciliationEngine",
    "ReconciliationError",
    "RecordNotFoundError",
    "RecordStore",
    "ReservedCategoryError",
    "SeriesValidationResult",
    "SqlAlchemyRecordStore",
    "StoreError",
    "ValidationIssue",
    "apply_transaction",
    "assess_account_health",
    "batch_match_cheques",
    "build_discrepancy_adjustment",
    "build_manual_adjustment",
    "can_pair",
    "check_insufficient_funds",
    "create_obligation_series",
    "detect_discrepancy",
    "ensure_unknown_category",
    "filter_duplicates",
    "find_pairing_candidates",
    "infer_amounts",
    "infer_step",
    "is_duplicate",
    "is_latest_for_account",
    "load_reconciliation_config",
    "mark_cleared",
    "match_cheque",
    "pairing_confidence",
    "preview_due_dates",
    "resolve_snapshot_balance",
    "seed_balance_state",
    "sort_chronologically",
    "suggest_next_cheque_number",
    "suggest_next_due_date",
    "summarize_matches",
    "validate_series",
]
