"""Shared fixtures: a sample imaging order and an in-memory record store."""

from __future__ import annotations

from typing import Any

import pytest

from ris_ingest.errors import StoreError
from ris_ingest.store.base import InsertResult, RecordStore

MSH = "MSH|^~\\&|RIS|HOSP|PACS|HOSP|20241217095948||OMI^O23^OMI_O23|MSG0001|P|2.5.1"
PID = "PID|1||12345^^^MRN||DOE^JOHN||19800101|M"
ORC = "ORC|NW|ACC001|FIL001"
# TQ1-7 start date/time, TQ1-9 priority
TQ1 = "TQ1" + "|" * 7 + "20241217095948.021" + "|" * 2 + "S^Stat^HL70078"
# OBR-2 placer no., OBR-3 filler no., OBR-4 procedure, OBR-18 placer field 1, OBR-24 modality
OBR = (
    "OBR|1|ACC001|FIL001|XR-CHEST^Chest X-ray^LOCAL"
    + "|" * 14
    + "PLC018"
    + "|" * 6
    + "CR"
)


@pytest.fixture
def segments_text():
    """Segment lines of the sample order, in source order."""
    return [MSH, PID, ORC, TQ1, OBR]


@pytest.fixture
def hl7_message(segments_text):
    return "\r\n".join(segments_text)


class FakeStore(RecordStore):
    """Dict-backed store that records every call it receives."""

    def __init__(
        self,
        existing_patients: tuple[str, ...] = (),
        lookup_error: bool = False,
        reject_tables: tuple[str, ...] = (),
        unreachable_tables: tuple[str, ...] = (),
    ):
        self.rows: dict[str, dict[str, dict[str, Any]]] = {}
        for patient_id in existing_patients:
            self.rows.setdefault("ris_patient", {})[patient_id] = {"id": patient_id}
        self.lookup_error = lookup_error
        self.reject_tables = reject_tables
        self.unreachable_tables = unreachable_tables
        self.lookups: list[str] = []
        self.inserts: list[tuple[str, dict[str, Any]]] = []

    def find_patient_by_id(self, patient_id: str, table: str) -> bool:
        self.lookups.append(patient_id)
        if self.lookup_error:
            raise StoreError("connection refused")
        return patient_id in self.rows.get(table, {})

    def insert(self, table: str, record: dict[str, Any]) -> InsertResult:
        self.inserts.append((table, record))
        if table in self.unreachable_tables:
            raise StoreError("read timed out")
        if table in self.reject_tables:
            return InsertResult(success=False, status_code=400, data={"message": "rejected"})
        rows = self.rows.setdefault(table, {})
        if record["id"] in rows:
            return InsertResult(
                success=False,
                status_code=409,
                data={"message": "duplicate key"},
                duplicate=True,
            )
        rows[record["id"]] = record
        return InsertResult(success=True, status_code=201, data=[record])

    def inserted_tables(self) -> list[str]:
        return [table for table, _ in self.inserts]


@pytest.fixture
def make_store():
    return FakeStore
