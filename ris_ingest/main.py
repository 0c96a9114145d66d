"""
FastAPI application entrypoint.

Run locally:  uvicorn ris_ingest.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ris_ingest.api.routes import _rest_store, router
from ris_ingest.config import settings
from ris_ingest.models import ris  # noqa: F401  (registers the RIS tables)
from ris_ingest.models.database import Base, get_engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(levelname)s | %(name)s | %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORE_BACKEND == "database":
        Base.metadata.create_all(bind=get_engine())
    yield
    if _rest_store.cache_info().currsize:
        _rest_store().close()


app = FastAPI(
    title="HL7 RIS Ingestion API",
    description=(
        "Receives HL7 v2 imaging orders, maps them to patient, study and "
        "imaging-study records, and stores them with per-record outcomes."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")
