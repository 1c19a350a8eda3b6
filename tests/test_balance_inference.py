"""Tests for the balance inference simulator."""

from decimal import Decimal

import pytest

from finsnap.models import AccountType, TransactionKind
from finsnap.schemas.candidate import SnapshotMeta
from finsnap.services.balance_inference import (
    effective_exchange_rate,
    infer_amounts,
    infer_step,
    resolve_snapshot_balance,
    seed_balance_state,
)
from tests.factories import AccountFactory, CandidateFactory


@pytest.fixture
def aed_account():
    return AccountFactory.build(currency="AED", balance=Decimal("2200.00"))


def test_foreign_snapshot_rewrites_amount_to_balance_delta(aed_account) -> None:
    """150 AED face value, balance 2200 -> 2000: the real cost was 200 AED."""
    candidate = CandidateFactory.build(
        amount=Decimal("150"),
        currency="AED",
        original_currency="USD",
        account_id=aed_account.id,
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2000")),
    )

    [result] = infer_amounts([candidate], [aed_account])

    assert result.amount == Decimal("200.00")
    assert result.currency == "AED"
    assert result.extracted_amount == Decimal("150")


def test_foreign_rewrite_sets_effective_exchange_rate(aed_account) -> None:
    candidate = CandidateFactory.build(
        amount=Decimal("50"),
        currency="USD",
        original_amount=Decimal("50"),
        original_currency="USD",
        account_id=aed_account.id,
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2016.35")),
    )

    [result] = infer_amounts([candidate], [aed_account])

    assert result.amount == Decimal("183.65")
    assert result.currency == "AED"
    assert result.exchange_rate == Decimal("3.67300000")


def test_no_snapshot_leaves_amounts_unchanged(aed_account) -> None:
    batch = [
        CandidateFactory.build(
            amount=Decimal(amount),
            currency="USD",
            original_currency="USD",
            account_id=aed_account.id,
        )
        for amount in ("10.00", "99.99", "0.01", "1234.56")
    ]

    results = infer_amounts(batch, [aed_account])

    assert [r.amount for r in results] == [c.amount for c in batch]
    assert [r.currency for r in results] == ["USD"] * 4


def test_domestic_snapshot_keeps_face_value(aed_account) -> None:
    candidate = CandidateFactory.build(
        amount=Decimal("150"),
        currency="AED",
        account_id=aed_account.id,
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2000")),
    )

    [result] = infer_amounts([candidate], [aed_account])

    assert result.amount == Decimal("150")


def test_delta_within_tolerance_keeps_face_value(aed_account) -> None:
    candidate = CandidateFactory.build(
        amount=Decimal("40"),
        currency="USD",
        original_currency="USD",
        account_id=aed_account.id,
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2199.995")),
    )

    [result] = infer_amounts([candidate], [aed_account])

    assert result.amount == Decimal("40")
    assert result.currency == "USD"


def test_state_is_threaded_between_steps(aed_account) -> None:
    """The second snapshot is compared with the first one, not with the stored balance."""
    first = CandidateFactory.build(
        amount=Decimal("10"),
        currency="USD",
        original_currency="USD",
        account_id=aed_account.id,
        txn_time="09:00",
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2163.27")),
    )
    second = CandidateFactory.build(
        amount=Decimal("20"),
        currency="USD",
        original_currency="USD",
        account_id=aed_account.id,
        txn_time="10:00",
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2089.81")),
    )

    results = infer_amounts([first, second], [aed_account])

    assert [r.amount for r in results] == [Decimal("36.73"), Decimal("73.46")]


def test_delta_accumulation_without_snapshot_feeds_next_step(aed_account) -> None:
    state = seed_balance_state([aed_account])
    expense = CandidateFactory.build(amount=Decimal("200"), currency="AED", account_id=aed_account.id)
    income = CandidateFactory.build(
        amount=Decimal("50"), currency="AED", kind=TransactionKind.INCOME, account_id=aed_account.id
    )

    state, _ = infer_step(state, expense)
    state, _ = infer_step(state, income)

    assert state.get(aed_account.id).balance == Decimal("2050.00")


def test_obligation_kind_does_not_move_balance(aed_account) -> None:
    state = seed_balance_state([aed_account])
    obligation = CandidateFactory.build(
        amount=Decimal("200"), currency="AED", kind=TransactionKind.OBLIGATION, account_id=aed_account.id
    )

    state, _ = infer_step(state, obligation)

    assert state.get(aed_account.id).balance == Decimal("2200.00")


def test_steps_do_not_mutate_previous_state(aed_account) -> None:
    initial = seed_balance_state([aed_account])
    candidate = CandidateFactory.build(amount=Decimal("100"), currency="AED", account_id=aed_account.id)

    advanced, _ = infer_step(initial, candidate)

    assert initial.get(aed_account.id).balance == Decimal("2200.00")
    assert advanced.get(aed_account.id).balance == Decimal("2100.00")


def test_inputs_are_not_mutated(aed_account) -> None:
    candidate = CandidateFactory.build(
        amount=Decimal("150"),
        currency="AED",
        original_currency="USD",
        account_id=aed_account.id,
        snapshot_meta=SnapshotMeta(available_balance=Decimal("2000")),
    )

    [result] = infer_amounts([candidate], [aed_account])

    assert result is not candidate
    assert candidate.amount == Decimal("150")
    assert aed_account.balance == Decimal("2200.00")


def test_unknown_account_passes_through() -> None:
    candidate = CandidateFactory.build(
        amount=Decimal("30"),
        original_amount=Decimal("10"),
        original_currency="EUR",
        account_id="missing",
        snapshot_meta=SnapshotMeta(available_balance=Decimal("0")),
    )

    [result] = infer_amounts([candidate], [])

    assert result.amount == Decimal("30")
    assert result.exchange_rate == Decimal("3.00000000")


def test_output_order_matches_input_across_accounts() -> None:
    first = AccountFactory.build(balance=Decimal("100"))
    second = AccountFactory.build(balance=Decimal("100"))
    batch = [
        CandidateFactory.build(amount=Decimal("1"), account_id=first.id),
        CandidateFactory.build(amount=Decimal("2"), account_id=second.id),
        CandidateFactory.build(amount=Decimal("3"), account_id=None),
        CandidateFactory.build(amount=Decimal("4"), account_id=first.id),
    ]

    results = infer_amounts(batch, [first, second])

    assert [r.amount for r in results] == [Decimal("1"), Decimal("2"), Decimal("3"), Decimal("4")]


def test_available_credit_snapshot_on_credit_card() -> None:
    card = AccountFactory.build(
        account_type=AccountType.CREDIT_CARD,
        currency="AED",
        balance=Decimal("-1000.00"),
        credit_limit=Decimal("5000.00"),
    )
    candidate = CandidateFactory.build(
        amount=Decimal("55"),
        currency="USD",
        original_currency="USD",
        account_id=card.id,
        snapshot_meta=SnapshotMeta(available_credit=Decimal("3800.00")),
    )

    [result] = infer_amounts([candidate], [card])

    assert result.amount == Decimal("200.00")
    assert result.currency == "AED"


class TestResolveSnapshotBalance:
    def test_available_balance_wins_over_credit(self) -> None:
        assert resolve_snapshot_balance(Decimal("10"), Decimal("4000"), Decimal("5000")) == Decimal("10")

    def test_zero_balance_is_a_snapshot(self) -> None:
        assert resolve_snapshot_balance(Decimal("0"), None, None) == Decimal("0")

    def test_credit_needs_a_limit(self) -> None:
        assert resolve_snapshot_balance(None, Decimal("4000"), None) is None

    def test_credit_becomes_negative_balance(self) -> None:
        assert resolve_snapshot_balance(None, Decimal("4000"), Decimal("5000")) == Decimal("-1000")

    def test_no_snapshot(self) -> None:
        assert resolve_snapshot_balance(None, None, Decimal("5000")) is None


@pytest.mark.parametrize(
    ("amount", "original", "expected"),
    [
        (Decimal("367.30"), Decimal("100"), Decimal("3.67300000")),
        (Decimal("100"), Decimal("100"), Decimal("1")),
        (Decimal("100"), None, Decimal("1")),
        (Decimal("100"), Decimal("0"), Decimal("1")),
    ],
)
def test_effective_exchange_rate(amount, original, expected) -> None:
    assert effective_exchange_rate(amount, original) == expected

