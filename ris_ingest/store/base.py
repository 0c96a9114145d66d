"""Backing-store contract used by the ingestion coordinator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InsertResult:
    """Outcome of one insert call that reached the store."""

    success: bool
    status_code: int
    data: Any = None
    # the store rejected the row because its primary key is already taken
    duplicate: bool = False


class RecordStore(ABC):
    """
    Key-based lookup/insert service.

    Implementations raise ``StoreError`` when the store cannot be reached or
    fails outright, and return an unsuccessful ``InsertResult`` when it
    answers but rejects the row.
    """

    @abstractmethod
    def find_patient_by_id(self, patient_id: str, table: str) -> bool: ...

    @abstractmethod
    def insert(self, table: str, record: dict[str, Any]) -> InsertResult: ...
