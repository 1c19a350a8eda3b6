"""Chronological ordering of candidate batches."""

from collections.abc import Iterable
from datetime import date
from typing import Protocol, TypeVar

MIDNIGHT = "00:00"


class Timestamped(Protocol):
    txn_date: date
    txn_time: str | None


T = TypeVar("T", bound=Timestamped)


def chronological_key(item: Timestamped) -> tuple[date, str]:
    """Sort key shared by candidates and stored transactions; a missing time sorts as midnight."""
    return item.txn_date, item.txn_time or MIDNIGHT


def sort_chronologically(items: Iterable[T]) -> list[T]:
    """Return items oldest first. Equal timestamps keep their input order."""
    return sorted(items, key=chronological_key)
