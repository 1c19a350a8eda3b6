"""Reconciliation API router."""

from datetime import date

from fastapi import APIRouter, Query

from finsnap.deps import Engine
from finsnap.logger import get_logger, log_exception
from finsnap.models import ScheduledObligation
from finsnap.schemas.obligation import (
    InsufficientFundsResponse,
    ObligationListResponse,
    ObligationResponse,
    ObligationSeriesParams,
    SeriesValidateRequest,
    SeriesValidateResponse,
    ValidationIssueResponse,
)
from finsnap.schemas.pairing import PairingCandidateResponse, PairRequest
from finsnap.schemas.reconciliation import (
    AccountHealthResponse,
    BalanceAdjustRequest,
    BalanceAdjustResponse,
    CommitRequest,
    CommitResponse,
    MatchResultResponse,
    MatchSummaryResponse,
    ReconcileRequest,
    ReconcileResponse,
    TransactionResponse,
)
from finsnap.services.cheque_matching import MatchConfidence, MatchResult
from finsnap.services.cheque_validation import suggest_next_cheque_number, suggest_next_due_date
from finsnap.services.obligations import ObligationSeriesError, ObligationStateError
from finsnap.services.reconciliation import ReconciliationError
from finsnap.services.store import EntityKind, RecordNotFoundError, StoreError
from finsnap.utils.exceptions import (
    raise_bad_request,
    raise_conflict,
    raise_internal_error,
    raise_not_found,
)

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])
logger = get_logger(__name__)


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile_batch(request: ReconcileRequest, engine: Engine) -> ReconcileResponse:
    """De-duplicate, infer amounts and propose cheque matches. Writes nothing."""
    result = engine.reconcile_batch(request.candidates)
    summary = result.summary
    return ReconcileResponse(
        confirmed=result.confirmed,
        duplicates_skipped=result.duplicates_skipped,
        matches=[
            MatchResultResponse(
                index=index,
                confidence=match.confidence.value,
                obligation_id=match.obligation.id if match.obligation else None,
                cheque_number=result.confirmed[index].cheque_number,
                reason=match.reason,
                warning=match.warning,
            )
            for index, match in sorted(result.matches.items())
        ],
        summary=MatchSummaryResponse(
            total=summary.total,
            high=summary.high,
            medium=summary.medium,
            low=summary.low,
            none=summary.none,
            has_issues=summary.has_issues,
            warnings=summary.warnings,
        ),
    )


@router.post("/commit", response_model=CommitResponse)
def commit(request: CommitRequest, engine: Engine) -> CommitResponse:
    """Persist confirmed candidates and clear the obligations they settle."""
    matches = None
    if request.matches is not None:
        matches = {}
        for selection in request.matches:
            if selection.index >= len(request.confirmed):
                raise_bad_request(f"Match index {selection.index} is out of range")
            obligation = engine.store.get(EntityKind.OBLIGATION, selection.obligation_id)
            if obligation is None:
                raise_not_found("Obligation")
            matches[selection.index] = MatchResult(
                confidence=MatchConfidence.HIGH,
                obligation=obligation,
                reason="Confirmed by user",
            )

    try:
        transactions = engine.commit(
            request.confirmed, matches, reconcile_balances=request.reconcile_balances
        )
    except RecordNotFoundError as exc:
        raise_not_found(exc.kind.value.title(), cause=exc)
    except StoreError as exc:
        log_exception(logger, exc, "Commit failed")
        raise_internal_error("Failed to save transactions", cause=exc)

    return CommitResponse(
        transactions=[TransactionResponse.model_validate(txn) for txn in transactions],
        adjustments=sum(1 for txn in transactions if txn.is_adjustment),
    )


@router.post("/obligations/series", response_model=ObligationListResponse, status_code=201)
def create_obligation_series(params: ObligationSeriesParams, engine: Engine) -> ObligationListResponse:
    """Create a series of post-dated cheques, all or nothing."""
    if params.account_id and engine.store.get(EntityKind.ACCOUNT, params.account_id) is None:
        raise_not_found("Account")
    try:
        created = engine.create_obligation_series(params)
    except ObligationSeriesError as exc:
        raise_internal_error(str(exc), cause=exc)

    items = [ObligationResponse.model_validate(obligation) for obligation in created]
    return ObligationListResponse(items=items, total=len(items))


@router.post("/obligations/validate", response_model=SeriesValidateResponse)
def validate_series(request: SeriesValidateRequest, engine: Engine) -> SeriesValidateResponse:
    """Check numbering and date spacing of a series; issues never block saving."""
    if request.series_id:
        obligations = [
            obligation
            for obligation in engine.store.get_all(EntityKind.OBLIGATION)
            if obligation.series_id == request.series_id
        ]
        if not obligations:
            raise_not_found("Series")
    else:
        obligations = [
            ScheduledObligation(
                id=item.id,
                due_date=item.due_date,
                cheque_number=item.cheque_number,
                amount=item.amount,
            )
            for item in request.obligations
        ]

    result = engine.validate_series(obligations)
    return SeriesValidateResponse(
        is_valid=result.is_valid,
        has_numbering_issues=result.has_numbering_issues,
        has_date_issues=result.has_date_issues,
        issues=[
            ValidationIssueResponse(
                severity=issue.severity.value,
                category=issue.category.value,
                obligation_id=issue.obligation_id,
                cheque_number=issue.cheque_number,
                message=issue.message,
            )
            for issue in result.issues
        ],
        next_cheque_number=suggest_next_cheque_number(obligations),
        next_due_date=suggest_next_due_date(obligations),
    )


@router.get(
    "/obligations/{obligation_id}/pairing-candidates",
    response_model=list[PairingCandidateResponse],
)
def pairing_candidates(obligation_id: str, engine: Engine) -> list[PairingCandidateResponse]:
    try:
        candidates = engine.pairing_candidates(obligation_id)
    except RecordNotFoundError as exc:
        raise_not_found("Obligation", cause=exc)
    return [
        PairingCandidateResponse(
            transaction=TransactionResponse.model_validate(candidate.transaction),
            score=candidate.score,
            confidence=candidate.confidence.value,
            reasons=candidate.reasons,
        )
        for candidate in candidates
    ]


@router.post("/obligations/{obligation_id}/pair", response_model=ObligationResponse)
def pair_obligation(obligation_id: str, request: PairRequest, engine: Engine) -> ObligationResponse:
    try:
        obligation = engine.pair_obligation(obligation_id, request.transaction_id)
    except RecordNotFoundError as exc:
        raise_not_found(exc.kind.value.title(), cause=exc)
    except ReconciliationError as exc:
        raise_bad_request(str(exc), cause=exc)
    except ObligationStateError as exc:
        raise_conflict(str(exc), cause=exc)
    return ObligationResponse.model_validate(obligation)


@router.get("/obligations/insufficient-funds", response_model=list[InsufficientFundsResponse])
def insufficient_funds(
    engine: Engine,
    days_ahead: int = Query(30, ge=1, le=365),
    today: date | None = None,
) -> list[InsufficientFundsResponse]:
    warnings = engine.insufficient_funds_warnings(today=today, days_ahead=days_ahead)
    return [
        InsufficientFundsResponse(
            account_id=warning.account_id,
            account_name=warning.account_name,
            current_balance=warning.current_balance,
            upcoming_obligations=warning.upcoming_obligations,
            shortage=warning.shortage,
            days_until_first=warning.days_until_first,
            affected_obligations=[
                ObligationResponse.model_validate(obligation)
                for obligation in warning.affected_obligations
            ],
        )
        for warning in warnings
    ]


@router.post("/accounts/{account_id}/adjust", response_model=BalanceAdjustResponse)
def adjust_balance(account_id: str, request: BalanceAdjustRequest, engine: Engine) -> BalanceAdjustResponse:
    """Set an account balance by booking a manual adjustment entry."""
    try:
        transaction = engine.adjust_balance(
            account_id, request.target_balance, request.on_date, request.at_time
        )
    except RecordNotFoundError as exc:
        raise_not_found("Account", cause=exc)

    account = engine.store.get(EntityKind.ACCOUNT, account_id)
    return BalanceAdjustResponse(
        account_id=account_id,
        balance=account.balance,
        adjusted=transaction is not None,
        transaction=TransactionResponse.model_validate(transaction) if transaction else None,
    )


@router.get("/accounts/health", response_model=list[AccountHealthResponse])
def account_health(engine: Engine) -> list[AccountHealthResponse]:
    return [
        AccountHealthResponse(
            account_id=health.account_id,
            needs_reconciliation=health.needs_reconciliation,
            severity=health.severity.value,
            current_balance=health.current_balance,
            expected_balance=health.expected_balance,
            difference=health.difference,
            snapshot_transaction_id=health.snapshot_transaction_id,
        )
        for health in engine.account_health()
    ]
