"""
FastAPI routes – the HL7 intake surface.

Demonstrates:
- Raw-body intake for pipe-delimited HL7 (no JSON envelope)
- Dependency injection of the record store and coordinator via Depends
- Client errors (undecodable payload, unknown profile) as 400, crashes as
  500, record-level failures inside a 200 report
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from functools import lru_cache

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ris_ingest.config import settings
from ris_ingest.errors import MessageDecodeError, UnknownProfileError
from ris_ingest.etl.ingestion import IngestionCoordinator, TableNames
from ris_ingest.hl7.mapper import map_message
from ris_ingest.hl7.profiles import get_profile
from ris_ingest.hl7.tokenizer import decode_message, tokenize
from ris_ingest.models.database import get_sessionmaker
from ris_ingest.schemas.api import ErrorResponse, HealthResponse, IngestionReport
from ris_ingest.store.base import RecordStore
from ris_ingest.store.database import DatabaseStore
from ris_ingest.store.rest import RestStore

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def _rest_store() -> RestStore:
    return RestStore(
        settings.STORE_REST_URL,
        api_key=settings.STORE_API_KEY,
        timeout=settings.STORE_TIMEOUT,
    )


def get_store() -> Iterator[RecordStore]:
    """Yields the configured store; database sessions are per request."""
    if settings.STORE_BACKEND == "rest":
        yield _rest_store()
        return

    db = get_sessionmaker()()
    try:
        yield DatabaseStore(db)
    finally:
        db.close()


def get_coordinator(store: RecordStore = Depends(get_store)) -> IngestionCoordinator:
    tables = TableNames(
        patient=settings.TABLE_PATIENT,
        study=settings.TABLE_STUDY,
        imaging_study=settings.TABLE_IMAGING_STUDY,
    )
    return IngestionCoordinator(store, tables)


def _error(status_code: int, error: str, details: str) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        store_backend=settings.STORE_BACKEND,
    )


# ---------------------------------------------------------------------------
# HL7 intake
# ---------------------------------------------------------------------------

@router.post(
    "/hl7",
    response_model=IngestionReport,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def ingest_hl7(
    request: Request,
    profile: str | None = None,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
):
    """
    Accept one raw HL7 order message, map it to patient / study / imaging
    study records and persist them. ``profile`` picks the sender layout.
    """
    try:
        text = decode_message(await request.body())
        sender = get_profile(profile or settings.SENDER_PROFILE)
    except (MessageDecodeError, UnknownProfileError) as exc:
        logger.warning("Rejected HL7 payload: %s", exc)
        return _error(400, "Failed to parse HL7", str(exc))

    order = map_message(tokenize(text), sender)

    try:
        report = await run_in_threadpool(coordinator.ingest, order)
    except Exception as exc:
        logger.exception("Ingestion of %s failed", order.study.id)
        return _error(500, "Ingestion failed", str(exc))

    logger.info(
        "Ingested %s: patient=%s study=%s imagingStudy=%s",
        order.study.id,
        report.operations.patient.value,
        report.operations.study.value,
        report.operations.imagingStudy.value,
    )
    return report
