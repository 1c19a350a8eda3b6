"""Tests for applying committed transactions to account balances."""

from decimal import Decimal

from finsnap.models import AccountType, TransactionKind
from finsnap.services.balance_updater import BalanceUpdateMethod, apply_transaction
from tests.factories import AccountFactory, TransactionFactory


def test_expense_without_snapshot_is_a_delta():
    account = AccountFactory.build(balance=Decimal("100.00"))
    txn = TransactionFactory.build(account_id=account.id, amount=Decimal("30.00"))

    update = apply_transaction(account, txn)

    assert update.method is BalanceUpdateMethod.DELTA
    assert (update.old_balance, update.new_balance) == (Decimal("100.00"), Decimal("70.00"))
    assert account.balance == Decimal("70.00")


def test_income_adds():
    account = AccountFactory.build(balance=Decimal("100.00"))
    txn = TransactionFactory.build(account_id=account.id, amount=Decimal("30.00"), kind=TransactionKind.INCOME)

    apply_transaction(account, txn)

    assert account.balance == Decimal("130.00")


def test_obligation_leaves_balance_alone():
    account = AccountFactory.build(balance=Decimal("100.00"))
    txn = TransactionFactory.build(account_id=account.id, kind=TransactionKind.OBLIGATION)

    apply_transaction(account, txn)

    assert account.balance == Decimal("100.00")


def test_balance_snapshot_overrides_delta():
    account = AccountFactory.build(balance=Decimal("100.00"))
    txn = TransactionFactory.build(
        account_id=account.id, amount=Decimal("30.00"), snapshot_available_balance=Decimal("65.00")
    )

    update = apply_transaction(account, txn)

    assert update.method is BalanceUpdateMethod.SNAPSHOT_BALANCE
    assert account.balance == Decimal("65.00")


def test_balance_snapshot_beats_credit_snapshot():
    card = AccountFactory.build(
        account_type=AccountType.CREDIT_CARD, balance=Decimal("-100"), credit_limit=Decimal("1000")
    )
    txn = TransactionFactory.build(
        account_id=card.id,
        snapshot_available_balance=Decimal("-150"),
        snapshot_available_credit=Decimal("700"),
    )

    update = apply_transaction(card, txn)

    assert update.method is BalanceUpdateMethod.SNAPSHOT_BALANCE
    assert card.balance == Decimal("-150")


def test_credit_snapshot_uses_limit():
    card = AccountFactory.build(
        account_type=AccountType.CREDIT_CARD, balance=Decimal("-100"), credit_limit=Decimal("1000")
    )
    txn = TransactionFactory.build(account_id=card.id, snapshot_available_credit=Decimal("850"))

    update = apply_transaction(card, txn)

    assert update.method is BalanceUpdateMethod.SNAPSHOT_CREDIT
    assert card.balance == Decimal("-150")


def test_credit_snapshot_without_limit_falls_back_to_delta():
    card = AccountFactory.build(account_type=AccountType.CREDIT_CARD, balance=Decimal("-100"))
    txn = TransactionFactory.build(
        account_id=card.id, amount=Decimal("25"), snapshot_available_credit=Decimal("850")
    )

    update = apply_transaction(card, txn)

    assert update.method is BalanceUpdateMethod.DELTA
    assert card.balance == Decimal("-125")


def test_opted_out_account_is_never_touched():
    account = AccountFactory.build(balance=Decimal("100.00"), auto_update_balance=False)
    txn = TransactionFactory.build(account_id=account.id, snapshot_available_balance=Decimal("1"))

    assert apply_transaction(account, txn) is None
    assert account.balance == Decimal("100.00")
