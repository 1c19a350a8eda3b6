"""Tests for the extraction boundary."""

from datetime import date
from decimal import Decimal

import pytest

from finsnap.config import settings
from finsnap.models import TransactionKind
from finsnap.services.extraction import (
    AccountRef,
    CandidateValidationError,
    ExtractionError,
    ExtractionService,
    normalize_record,
    resolve_account_id,
)
from tests.factories import AccountFactory


class FakeExtractor:
    def __init__(self, records=None, error: Exception | None = None):
        self.records = records if records is not None else []
        self.error = error
        self.requests = []

    def extract(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.records


ACCOUNTS = [
    AccountRef(id="acc-visa", name="Visa", last4="4321", account_type="CREDIT_CARD"),
    AccountRef(id="acc-bank", name="Current", last4="9876", account_type="BANK"),
]


class TestResolveAccountId:
    def test_exact_id(self):
        assert resolve_account_id("acc-bank", ACCOUNTS) == "acc-bank"

    def test_card_digits_in_text(self):
        assert resolve_account_id("Visa card ending ****4321", ACCOUNTS) == "acc-visa"

    @pytest.mark.parametrize("reference", [None, "", "card 21", "ending 0000"])
    def test_unresolvable(self, reference):
        assert resolve_account_id(reference, ACCOUNTS) is None


def test_normalize_record_maps_extractor_keys():
    normalized = normalize_record(
        {
            "type": "income",
            "chequeNumber": "7",
            "parsedMeta": {"availableBalance": "10.00"},
        }
    )

    assert normalized == {
        "kind": "income",
        "cheque_number": "7",
        "snapshot_meta": {"available_balance": "10.00"},
    }


class TestExtractionService:
    def test_records_become_candidates(self):
        account = AccountFactory.build(last4_digits="4321", currency="AED")
        extractor = FakeExtractor(
            [
                {
                    "amount": "49.99",
                    "currency": "usd",
                    "originalAmount": "49.99",
                    "originalCurrency": "USD",
                    "merchant": "Netflix",
                    "date": "2024-03-10",
                    "time": "21:15",
                    "type": "expense",
                    "account": "Card ending 4321",
                    "parsedMeta": {"availableCredit": "4800.00"},
                }
            ]
        )

        [candidate] = ExtractionService(extractor).extract_candidates(
            text="Purchase of USD 49.99 at Netflix", accounts=[account]
        )

        assert candidate.account_id == account.id
        assert candidate.currency == "USD"
        assert candidate.amount == Decimal("49.99")
        assert candidate.txn_date == date(2024, 3, 10)
        assert candidate.txn_time == "21:15"
        assert candidate.kind is TransactionKind.EXPENSE
        assert candidate.available_credit == Decimal("4800.00")

    def test_context_is_passed_to_extractor(self):
        extractor = FakeExtractor([])
        account = AccountFactory.build(last4_digits="1111")

        ExtractionService(extractor).extract_candidates(text="hello", accounts=[account])

        [request] = extractor.requests
        assert request.text == "hello"
        assert request.context.base_currency == settings.base_currency
        assert request.context.cheque_keywords == settings.cheque_keywords
        assert [ref.last4 for ref in request.context.accounts] == ["1111"]

    def test_missing_currency_defaults_to_base(self):
        extractor = FakeExtractor([{"amount": "5", "date": "2024-03-10"}])

        [candidate] = ExtractionService(extractor).extract_candidates(text="x")

        assert candidate.currency == settings.base_currency

    def test_no_input(self):
        with pytest.raises(ExtractionError, match="No input provided"):
            ExtractionService(FakeExtractor()).extract_candidates()

    def test_extractor_failure_is_wrapped(self):
        service = ExtractionService(FakeExtractor(error=RuntimeError("model timeout")))

        with pytest.raises(ExtractionError) as exc_info:
            service.extract_candidates(text="x")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_non_list_result_is_rejected(self):
        with pytest.raises(ExtractionError):
            ExtractionService(FakeExtractor(records={"amount": 1})).extract_candidates(text="x")

    def test_invalid_record_names_index_and_field(self):
        extractor = FakeExtractor(
            [
                {"amount": "5", "date": "2024-03-10"},
                {"amount": "-5", "date": "2024-03-10"},
            ]
        )

        with pytest.raises(CandidateValidationError) as exc_info:
            ExtractionService(extractor).extract_candidates(text="x")

        assert exc_info.value.index == 1
        assert exc_info.value.field_name == "amount"
