"""Balance inference: recover the real home-currency cost from balance snapshots.

When a bank message reports "available balance now X" (or "available credit
now Y") the true charge in the account's currency is the change between the
previous and the new balance. That delta beats any face-value amount the
extractor read, especially across a currency conversion.

The running per-account state is an explicit immutable value threaded through
each step; nothing is cached between calls.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType

from finsnap.logger import get_logger
from finsnap.models import Account
from finsnap.schemas.candidate import CandidateEvent
from finsnap.services.reconciliation_config import DEFAULT_CONFIG, ReconciliationConfig

logger = get_logger(__name__)

CENT = Decimal("0.01")
RATE_PLACES = Decimal("0.00000001")


@dataclass(frozen=True)
class AccountState:
    """Running balance of one account during a simulation pass."""

    balance: Decimal
    currency: str
    credit_limit: Decimal | None = None


@dataclass(frozen=True)
class BalanceState:
    """Immutable account_id -> AccountState mapping."""

    accounts: Mapping[str, AccountState] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, account_id: str | None) -> AccountState | None:
        if account_id is None:
            return None
        return self.accounts.get(account_id)

    def with_balance(self, account_id: str, balance: Decimal) -> BalanceState:
        current = self.accounts[account_id]
        updated = dict(self.accounts)
        updated[account_id] = AccountState(
            balance=balance,
            currency=current.currency,
            credit_limit=current.credit_limit,
        )
        return BalanceState(accounts=MappingProxyType(updated))


def seed_balance_state(accounts: Iterable[Account]) -> BalanceState:
    """Seed the running state from the persisted account records."""
    return BalanceState(
        accounts=MappingProxyType(
            {
                account.id: AccountState(
                    balance=Decimal(account.balance),
                    currency=account.currency,
                    credit_limit=account.credit_limit,
                )
                for account in accounts
            }
        )
    )


def resolve_snapshot_balance(
    available_balance: Decimal | None,
    available_credit: Decimal | None,
    credit_limit: Decimal | None,
) -> Decimal | None:
    """Turn a reported snapshot into a signed account balance.

    An available-balance snapshot always wins over an available-credit one.
    Available credit only means something with a known limit:
    debt = limit - available credit, stored as a negative balance.
    """
    if available_balance is not None:
        return Decimal(available_balance)
    if available_credit is not None and credit_limit:
        return -(Decimal(credit_limit) - Decimal(available_credit))
    return None


def effective_exchange_rate(amount: Decimal, original_amount: Decimal | None) -> Decimal:
    if original_amount and amount and original_amount != amount:
        return (amount / original_amount).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
    return Decimal("1")


def infer_step(
    state: BalanceState,
    candidate: CandidateEvent,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> tuple[BalanceState, CandidateEvent]:
    """Apply one candidate to the running state.

    Returns the advanced state and a (possibly rewritten) copy of the candidate.
    """
    account_state = state.get(candidate.account_id)
    if account_state is None:
        rate = effective_exchange_rate(candidate.amount, candidate.original_amount)
        return state, candidate.model_copy(update={"exchange_rate": rate})

    amount = candidate.amount
    currency = candidate.currency
    extracted_amount = candidate.extracted_amount
    new_balance = resolve_snapshot_balance(
        candidate.available_balance,
        candidate.available_credit,
        account_state.credit_limit,
    )
    is_foreign = (
        candidate.original_currency is not None
        and candidate.original_currency != account_state.currency
    )

    if is_foreign and new_balance is not None:
        diff = abs(account_state.balance - new_balance)
        # Below tolerance the balance did not move; keep the face value instead
        # of manufacturing a zero-amount entry from rounding noise.
        if diff > config.amount_tolerance:
            amount = diff.quantize(CENT, rounding=ROUND_HALF_UP)
            currency = account_state.currency
            if extracted_amount is None:
                extracted_amount = candidate.amount
            logger.info(
                "Rewrote candidate amount from balance delta",
                account_id=candidate.account_id,
                face_amount=str(candidate.amount),
                face_currency=candidate.currency,
                inferred_amount=str(amount),
                currency=currency,
            )

    if new_balance is not None:
        next_balance = new_balance
    else:
        next_balance = account_state.balance + candidate.kind.balance_effect(candidate.amount)

    rewritten = candidate.model_copy(
        update={
            "amount": amount,
            "currency": currency,
            "extracted_amount": extracted_amount,
            "exchange_rate": effective_exchange_rate(amount, candidate.original_amount),
        }
    )
    return state.with_balance(candidate.account_id, next_balance), rewritten


def simulate(
    state: BalanceState,
    candidates: Iterable[CandidateEvent],
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> tuple[BalanceState, list[CandidateEvent]]:
    """Fold candidates (oldest first) through infer_step."""
    results: list[CandidateEvent] = []
    for candidate in candidates:
        state, rewritten = infer_step(state, candidate, config)
        results.append(rewritten)
    return state, results


def infer_amounts(
    candidates: Sequence[CandidateEvent],
    accounts: Iterable[Account],
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> list[CandidateEvent]:
    """Run the simulator over a chronologically sorted, de-duplicated batch.

    Candidates are partitioned per account; each partition is folded strictly in
    order because step i+1 depends on step i, while partitions are independent.
    Output order matches input order.
    """
    state = seed_balance_state(accounts)
    partitions: dict[str | None, list[int]] = {}
    for index, candidate in enumerate(candidates):
        key = candidate.account_id if state.get(candidate.account_id) else None
        partitions.setdefault(key, []).append(index)

    output: list[CandidateEvent | None] = [None] * len(candidates)
    for indices in partitions.values():
        state, rewritten = simulate(state, (candidates[i] for i in indices), config)
        for index, candidate in zip(indices, rewritten, strict=True):
            output[index] = candidate

    return [candidate for candidate in output if candidate is not None]
