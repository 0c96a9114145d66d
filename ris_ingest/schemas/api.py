"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ris_ingest.schemas.domain import MappedOrder


# ---------------------------------------------------------------------------
# HL7 ingestion report
# ---------------------------------------------------------------------------

class RecordOutcome(str, Enum):
    INSERTED = "inserted"
    ALREADY_EXISTED = "already_existed"  # patient only
    FAILED = "failed"


class ExistenceCheck(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    # the lookup failed and the patient was treated as new
    ERROR = "error"


class Operations(BaseModel):
    patient: RecordOutcome
    study: RecordOutcome
    imagingStudy: RecordOutcome


class DebugInfo(BaseModel):
    patient: str
    study: str
    imagingStudy: str


class TaskSummary(BaseModel):
    status: str
    duration_ms: float | None = None
    error: str | None = None


class IngestionReport(BaseModel):
    """What happened to each record mapped from one HL7 message."""
    parsedData: MappedOrder
    operations: Operations
    debug: DebugInfo
    existenceCheck: ExistenceCheck
    errors: dict[str, str] = Field(default_factory=dict)
    steps: dict[str, TaskSummary] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    store_backend: str
