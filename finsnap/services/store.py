"""Record store boundary.

The engine only needs four operations over four entity kinds. Every write is
committed on its own; callers that need all-or-nothing behaviour across
several writes must compensate themselves (see obligations.create_obligation_series).
"""

from __future__ import annotations

import enum
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsnap.logger import get_logger
from finsnap.models import (
    UNKNOWN_CATEGORY_ID,
    Account,
    Category,
    ScheduledObligation,
    Transaction,
    build_unknown_category,
)

logger = get_logger(__name__)


class EntityKind(str, enum.Enum):
    ACCOUNT = "ACCOUNT"
    TRANSACTION = "TRANSACTION"
    OBLIGATION = "OBLIGATION"
    CATEGORY = "CATEGORY"


MODEL_FOR_KIND: dict[EntityKind, type] = {
    EntityKind.ACCOUNT: Account,
    EntityKind.TRANSACTION: Transaction,
    EntityKind.OBLIGATION: ScheduledObligation,
    EntityKind.CATEGORY: Category,
}


class StoreError(Exception):
    """Raised when the underlying store rejects a read or write."""

    pass


class RecordNotFoundError(StoreError):
    def __init__(self, kind: EntityKind, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.value.title()} {record_id} not found")


class ReservedCategoryError(StoreError):
    """Raised when attempting to delete the reserved adjustment category."""

    pass


class RecordStore(Protocol):
    def get_all(self, kind: EntityKind) -> list[Any]: ...

    def get(self, kind: EntityKind, record_id: str) -> Any | None: ...

    def put(self, kind: EntityKind, record: Any) -> Any: ...

    def delete(self, kind: EntityKind, record_id: str) -> None: ...


class SqlAlchemyRecordStore:
    """RecordStore backed by a SQLAlchemy session, one commit per write."""

    def __init__(self, session: Session):
        self.session = session

    def get_all(self, kind: EntityKind) -> list[Any]:
        model = MODEL_FOR_KIND[kind]
        return list(self.session.scalars(select(model)).all())

    def get(self, kind: EntityKind, record_id: str) -> Any | None:
        return self.session.get(MODEL_FOR_KIND[kind], record_id)

    def put(self, kind: EntityKind, record: Any) -> Any:
        model = MODEL_FOR_KIND[kind]
        if not isinstance(record, model):
            raise TypeError(f"Expected {model.__name__} for {kind.value}, got {type(record).__name__}")
        try:
            self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to save {kind.value.lower()}: {exc}") from exc
        return record

    def delete(self, kind: EntityKind, record_id: str) -> None:
        if kind is EntityKind.CATEGORY and record_id == UNKNOWN_CATEGORY_ID:
            raise ReservedCategoryError("The Unknown category is reserved and cannot be deleted")

        record = self.get(kind, record_id)
        if record is None:
            raise RecordNotFoundError(kind, record_id)
        try:
            self.session.delete(record)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to delete {kind.value.lower()} {record_id}: {exc}") from exc


def ensure_unknown_category(store: RecordStore) -> Category:
    """Return the reserved adjustment category, creating it on first use."""
    category = store.get(EntityKind.CATEGORY, UNKNOWN_CATEGORY_ID)
    if category is None:
        category = store.put(EntityKind.CATEGORY, build_unknown_category())
        logger.info("Created reserved category", category_id=UNKNOWN_CATEGORY_ID)
    return category
