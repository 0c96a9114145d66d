"""SQLAlchemy implementation of the record store."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Table, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ris_ingest.errors import StoreError
from ris_ingest.models import ris  # noqa: F401  (registers the RIS tables)
from ris_ingest.models.database import Base
from ris_ingest.store.base import InsertResult, RecordStore

logger = logging.getLogger(__name__)


class DatabaseStore(RecordStore):
    """Reads and writes RIS rows through one SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise StoreError(f"Unknown table '{name}'", status_code=404)
        return table

    def _exists(self, table: Table, record_id: str) -> bool:
        stmt = select(table.c.id).where(table.c.id == record_id).limit(1)
        return self._session.execute(stmt).first() is not None

    def find_patient_by_id(self, patient_id: str, table: str) -> bool:
        try:
            return self._exists(self._table(table), patient_id)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Patient lookup failed: {exc}") from exc

    def insert(self, table: str, record: dict[str, Any]) -> InsertResult:
        target = self._table(table)
        values = {key: value for key, value in record.items() if key in target.c}
        try:
            self._session.execute(insert(target).values(**values))
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            # primary-key clash vs. any other constraint (e.g. a missing study row)
            try:
                duplicate = self._exists(target, record.get("id", ""))
            except SQLAlchemyError:
                duplicate = False
            logger.warning("Insert into %s rejected (duplicate=%s): %s", table, duplicate, exc.orig)
            return InsertResult(
                success=False,
                status_code=409,
                data={"error": str(exc.orig)},
                duplicate=duplicate,
            )
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Insert into {table} failed: {exc}") from exc

        logger.info("Inserted %s into %s", record.get("id"), table)
        return InsertResult(success=True, status_code=201, data=values)
