"""Tests for chronological ordering of candidate batches."""

from datetime import date

from finsnap.services.chronology import chronological_key, sort_chronologically
from tests.factories import CandidateFactory


def test_sorts_by_date_then_time() -> None:
    late = CandidateFactory.build(txn_date=date(2024, 3, 2), txn_time="08:00", merchant="late")
    early = CandidateFactory.build(txn_date=date(2024, 3, 1), txn_time="23:59", merchant="early")
    noon = CandidateFactory.build(txn_date=date(2024, 3, 2), txn_time="12:00", merchant="noon")

    ordered = sort_chronologically([noon, late, early])

    assert [c.merchant for c in ordered] == ["early", "late", "noon"]


def test_missing_time_sorts_as_midnight() -> None:
    untimed = CandidateFactory.build(txn_date=date(2024, 3, 1), txn_time=None, merchant="untimed")
    timed = CandidateFactory.build(txn_date=date(2024, 3, 1), txn_time="00:01", merchant="timed")

    assert chronological_key(untimed) == (date(2024, 3, 1), "00:00")
    assert [c.merchant for c in sort_chronologically([timed, untimed])] == ["untimed", "timed"]


def test_equal_timestamps_keep_input_order() -> None:
    batch = [CandidateFactory.build(merchant=f"m{i}") for i in range(5)]

    assert [c.merchant for c in sort_chronologically(batch)] == ["m0", "m1", "m2", "m3", "m4"]


def test_returns_new_list() -> None:
    batch = [CandidateFactory.build()]
    assert sort_chronologically(batch) is not batch
