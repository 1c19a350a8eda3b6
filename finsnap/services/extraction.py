"""Extraction boundary.

The extraction algorithm itself (an LLM prompt, OCR, a regex pack) lives
outside this package behind the ``Extractor`` protocol. This service builds
the context the extractor needs, times the call, and turns its loosely typed
records into validated ``CandidateEvent`` objects.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError

from finsnap.config import settings
from finsnap.logger import get_logger, log_external_api
from finsnap.models import Account, Category
from finsnap.schemas.candidate import CandidateEvent

logger = get_logger(__name__)

# Extractor keys that differ from CandidateEvent field names
_KEY_ALIASES = {
    "type": "kind",
    "originalAmount": "original_amount",
    "originalCurrency": "original_currency",
    "exchangeRate": "exchange_rate",
    "accountId": "account_id",
    "isTransfer": "is_transfer",
    "isCheque": "is_cheque",
    "chequeNumber": "cheque_number",
    "rawText": "raw_text",
    "parsedMeta": "snapshot_meta",
}
_SNAPSHOT_ALIASES = {
    "availableBalance": "available_balance",
    "availableCredit": "available_credit",
}


class ExtractionError(Exception):
    """Raised when extraction fails."""

    pass


class CandidateValidationError(ExtractionError):
    """Raised when an extracted record cannot become a CandidateEvent."""

    def __init__(self, index: int, field_name: str, message: str):
        self.index = index
        self.field_name = field_name
        super().__init__(f"Record {index}: invalid field '{field_name}': {message}")


@dataclass(frozen=True)
class AccountRef:
    id: str
    name: str
    last4: str | None
    account_type: str


@dataclass(frozen=True)
class ExtractionContext:
    base_currency: str
    categories: list[str] = field(default_factory=list)
    accounts: list[AccountRef] = field(default_factory=list)
    cheque_keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionRequest:
    context: ExtractionContext
    text: str | None = None
    image: bytes | None = None
    mime_type: str | None = None


class Extractor(Protocol):
    def extract(self, request: ExtractionRequest) -> list[dict[str, Any]]: ...


def build_context(accounts: Iterable[Account], categories: Iterable[Category]) -> ExtractionContext:
    return ExtractionContext(
        base_currency=settings.base_currency,
        categories=[category.name for category in categories],
        accounts=[
            AccountRef(
                id=account.id,
                name=account.name,
                last4=account.last4_digits,
                account_type=account.account_type.value,
            )
            for account in accounts
        ],
        cheque_keywords=list(settings.cheque_keywords),
    )


def resolve_account_id(reference: Any, accounts: Sequence[AccountRef]) -> str | None:
    """Map an extractor account reference (id, or text ending in card digits) to an account id."""
    if not reference:
        return None
    reference = str(reference).strip()
    if any(account.id == reference for account in accounts):
        return reference

    digits = re.sub(r"\D", "", reference)
    if len(digits) < 4:
        return None
    last4 = digits[-4:]
    for account in accounts:
        if account.last4 and account.last4 == last4:
            return account.id
    return None


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    normalized = {_KEY_ALIASES.get(key, key): value for key, value in record.items()}
    meta = normalized.get("snapshot_meta")
    if isinstance(meta, dict):
        normalized["snapshot_meta"] = {_SNAPSHOT_ALIASES.get(k, k): v for k, v in meta.items()}
    return normalized


class ExtractionService:
    """Service for turning raw messages into candidate events."""

    def __init__(self, extractor: Extractor) -> None:
        self.extractor = extractor

    def extract_candidates(
        self,
        *,
        text: str | None = None,
        image: bytes | None = None,
        mime_type: str | None = None,
        accounts: Iterable[Account] = (),
        categories: Iterable[Category] = (),
    ) -> list[CandidateEvent]:
        if not text and not image:
            raise ExtractionError("No input provided")

        context = build_context(accounts, categories)
        request = ExtractionRequest(context=context, text=text, image=image, mime_type=mime_type)
        try:
            records = self._call_extractor(request)
        except Exception as exc:
            raise ExtractionError(f"Extractor failed: {exc}") from exc

        candidates = [
            self._to_candidate(index, record, context) for index, record in enumerate(records)
        ]
        logger.info(
            "Extracted candidates",
            records=len(records),
            with_account=sum(1 for candidate in candidates if candidate.account_id),
        )
        return candidates

    @log_external_api("extractor")
    def _call_extractor(self, request: ExtractionRequest) -> list[dict[str, Any]]:
        records = self.extractor.extract(request)
        if not isinstance(records, list):
            raise ExtractionError(f"Extractor returned {type(records).__name__}, expected a list")
        return records

    def _to_candidate(
        self, index: int, record: dict[str, Any], context: ExtractionContext
    ) -> CandidateEvent:
        if not isinstance(record, dict):
            raise CandidateValidationError(index, "record", f"expected an object, got {type(record).__name__}")

        data = normalize_record(record)
        # Amounts without a currency are in the user's base currency
        if not data.get("currency"):
            data["currency"] = context.base_currency
        account_text = data.pop("account", None)
        reference = data.get("account_id") or account_text
        data["account_id"] = resolve_account_id(
            data.get("account_id"), context.accounts
        ) or resolve_account_id(account_text, context.accounts)
        if reference and data["account_id"] is None:
            logger.info("Unresolved account reference", index=index)

        try:
            return CandidateEvent.model_validate(data)
        except ValidationError as exc:
            error = exc.errors()[0]
            field_name = ".".join(str(part) for part in error["loc"]) or "record"
            raise CandidateValidationError(index, field_name, error["msg"]) from exc
