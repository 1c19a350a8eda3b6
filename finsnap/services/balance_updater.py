"""Apply a confirmed transaction to its account's stored balance."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from finsnap.logger import get_logger
from finsnap.models import Account, Transaction
from finsnap.services.balance_inference import resolve_snapshot_balance

logger = get_logger(__name__)


class BalanceUpdateMethod(str, enum.Enum):
    SNAPSHOT_BALANCE = "SNAPSHOT_BALANCE"
    SNAPSHOT_CREDIT = "SNAPSHOT_CREDIT"
    DELTA = "DELTA"


@dataclass(frozen=True)
class BalanceUpdate:
    """What apply_transaction did to an account."""

    account_id: str
    method: BalanceUpdateMethod
    old_balance: Decimal
    new_balance: Decimal


def apply_transaction(account: Account, transaction: Transaction) -> BalanceUpdate | None:
    """Move the account balance to reflect a committed transaction.

    Snapshot balances are absolute truth and replace the stored balance;
    otherwise the transaction's own amount is applied as a delta. Accounts that
    opted out of automatic updates are left untouched and None is returned.
    """
    if not account.auto_update_balance:
        logger.debug(
            "Skipped balance update for opted-out account",
            account_id=account.id,
            transaction_id=transaction.id,
        )
        return None

    old_balance = Decimal(account.balance)
    snapshot = resolve_snapshot_balance(
        transaction.available_balance,
        transaction.available_credit,
        account.credit_limit,
    )

    if snapshot is not None:
        method = (
            BalanceUpdateMethod.SNAPSHOT_BALANCE
            if transaction.available_balance is not None
            else BalanceUpdateMethod.SNAPSHOT_CREDIT
        )
        new_balance = snapshot
    else:
        method = BalanceUpdateMethod.DELTA
        new_balance = old_balance + transaction.kind.balance_effect(Decimal(transaction.amount))

    account.balance = new_balance
    logger.info(
        "Account balance updated",
        account_id=account.id,
        transaction_id=transaction.id,
        method=method.value,
        old_balance=str(old_balance),
        new_balance=str(new_balance),
    )
    return BalanceUpdate(
        account_id=account.id,
        method=method,
        old_balance=old_balance,
        new_balance=new_balance,
    )
