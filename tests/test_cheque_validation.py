"""Tests for cheque series validation."""

from datetime import date

from finsnap.services.cheque_validation import (
    IssueCategory,
    IssueSeverity,
    suggest_next_cheque_number,
    suggest_next_due_date,
    validate_series,
)
from tests.factories import ObligationFactory


def series(*entries):
    """Build obligations from (cheque_number, due_date) pairs."""
    return [ObligationFactory.build(cheque_number=number, due_date=due) for number, due in entries]


MONTHLY = [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)]


def test_clean_series_is_valid():
    result = validate_series(series(("100", MONTHLY[0]), ("101", MONTHLY[1]), ("102", MONTHLY[2])))

    assert result.is_valid
    assert result.issues == []
    assert not result.has_numbering_issues
    assert not result.has_date_issues


def test_numbering_gap_is_a_warning():
    result = validate_series(series(("100", MONTHLY[0]), ("101", MONTHLY[1]), ("105", MONTHLY[2])))

    assert result.is_valid
    [issue] = result.issues
    assert issue.severity is IssueSeverity.WARNING
    assert issue.category is IssueCategory.NUMBERING
    assert issue.cheque_number == "105"
    assert "3 numbers skipped" in issue.message


def test_gap_of_three_is_tolerated():
    result = validate_series(series(("100", MONTHLY[0]), ("103", MONTHLY[1])))
    assert result.issues == []


def test_decreasing_number_is_an_error():
    result = validate_series(series(("100", MONTHLY[0]), ("99", MONTHLY[1])))

    assert not result.is_valid
    [issue] = result.errors
    assert issue.category is IssueCategory.NUMBERING
    assert issue.cheque_number == "99"
    assert "lower number" in issue.message


def test_duplicate_numbers_flag_every_holder():
    obligations = series(("100", MONTHLY[0]), ("100", MONTHLY[1]), ("101", MONTHLY[2]))

    result = validate_series(obligations)

    duplicates = [i for i in result.errors if "Duplicate" in i.message]
    assert {i.obligation_id for i in duplicates} == {obligations[0].id, obligations[1].id}
    assert not result.is_valid


def test_non_numeric_numbers_skip_numbering_checks():
    result = validate_series(series(("A1", MONTHLY[0]), ("B7", MONTHLY[1])))
    assert not result.has_numbering_issues


def test_same_day_is_a_warning():
    result = validate_series(series(("1", MONTHLY[0]), ("2", MONTHLY[0])))

    [issue] = result.issues
    assert issue.severity is IssueSeverity.WARNING
    assert issue.category is IssueCategory.DATE
    assert result.is_valid


def test_unusual_interval_is_a_warning():
    obligations = series(
        ("1", date(2024, 1, 1)),
        ("2", date(2024, 1, 31)),
        ("3", date(2024, 3, 1)),
        ("4", date(2024, 3, 31)),
        ("5", date(2024, 6, 14)),
    )

    result = validate_series(obligations)

    [issue] = result.issues
    assert issue.category is IssueCategory.DATE
    assert issue.cheque_number == "5"
    assert "Unusual date interval: 75 days (expected ~30 days)" in issue.message


def test_single_sample_interval_cannot_be_unusual():
    result = validate_series(series(("1", date(2024, 1, 1)), ("2", date(2024, 6, 1))))
    assert result.issues == []


def test_errors_do_not_depend_on_input_order():
    obligations = series(
        ("100", MONTHLY[0]),
        ("99", MONTHLY[1]),
        ("101", MONTHLY[2]),
        ("101", MONTHLY[3]),
    )

    forward = validate_series(obligations)
    backward = validate_series(list(reversed(obligations)))

    def error_set(result):
        return {(i.obligation_id, i.message) for i in result.errors}

    assert error_set(forward) == error_set(backward)
    assert error_set(forward)


def test_valid_series_stays_valid_when_reversed():
    obligations = series(("100", MONTHLY[0]), ("101", MONTHLY[1]), ("102", MONTHLY[2]))

    assert validate_series(list(reversed(obligations))).is_valid


def test_empty_series_is_valid():
    assert validate_series([]).is_valid


class TestSuggestions:
    def test_next_cheque_number(self):
        assert suggest_next_cheque_number(series(("100", MONTHLY[0]), ("104", MONTHLY[1]))) == "105"

    def test_next_cheque_number_without_numbers(self):
        assert suggest_next_cheque_number(series((None, MONTHLY[0]))) is None

    def test_next_due_date_follows_average_interval(self):
        obligations = series(("1", date(2024, 1, 1)), ("2", date(2024, 1, 15)), ("3", date(2024, 1, 29)))
        assert suggest_next_due_date(obligations) == date(2024, 2, 12)

    def test_next_due_date_with_single_obligation_is_next_month(self):
        assert suggest_next_due_date(series(("1", date(2024, 1, 31)))) == date(2024, 2, 29)

    def test_next_due_date_of_empty_series(self):
        assert suggest_next_due_date([]) is None
