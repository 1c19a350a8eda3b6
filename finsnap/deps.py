"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from finsnap.deps import DbSession, Engine

    def my_endpoint(engine: Engine):
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from finsnap.database import get_db
from finsnap.services.reconciliation import ReconciliationEngine
from finsnap.services.reconciliation_config import load_reconciliation_config
from finsnap.services.store import SqlAlchemyRecordStore

DbSession = Annotated[Session, Depends(get_db)]


def get_engine(db: DbSession) -> ReconciliationEngine:
    return ReconciliationEngine(SqlAlchemyRecordStore(db), load_reconciliation_config())


Engine = Annotated[ReconciliationEngine, Depends(get_engine)]

__all__ = ["DbSession", "Engine", "get_engine"]
