"""
Ingestion coordinator: persists the records mapped from one HL7 message.

Demonstrates:
- An existence check guarding conditional patient creation (idempotency)
- Unconditional study / imaging-study creation
- Per-record partial-failure tracking: a failed record never stops its
  siblings and never fails the request
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from ris_ingest.errors import IngestionError, StoreError
from ris_ingest.etl.dag import DAG
from ris_ingest.schemas.api import (
    DebugInfo,
    ExistenceCheck,
    IngestionReport,
    Operations,
    RecordOutcome,
    TaskSummary,
)
from ris_ingest.schemas.domain import MappedOrder
from ris_ingest.schemas.records import (
    RIS_IMAGING_STUDY_SCHEMA,
    RIS_PATIENT_SCHEMA,
    RIS_STUDY_SCHEMA,
)
from ris_ingest.services.validation import validate_against_schema
from ris_ingest.store.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableNames:
    patient: str = "ris_patient"
    study: str = "ris_study"
    imaging_study: str = "ris_imaging_study"


@dataclass(frozen=True)
class Attempt:
    """Result of trying to persist one record."""

    outcome: RecordOutcome
    debug: str
    error: str | None = None


class IngestionCoordinator:
    """Runs the existence check, then creates patient, study and imaging study.

    Steps run strictly one after another; the store is the only shared
    resource, and its primary key on patient id settles races between
    concurrent messages for the same patient.
    """

    def __init__(self, store: RecordStore, tables: TableNames | None = None):
        self.store = store
        self.tables = tables or TableNames()

    # -----------------------------------------------------------------------
    # Steps (each receives and returns a context dict)
    # -----------------------------------------------------------------------

    def check_patient(self, context: dict[str, Any]) -> dict[str, Any]:
        patient_id = context["order"].patient.id
        try:
            exists = self.store.find_patient_by_id(patient_id, self.tables.patient)
        except StoreError as exc:
            # Treat as new: a duplicate insert is caught by the store, a
            # silently dropped patient is not.
            logger.warning("Existence check for %s failed, assuming new patient: %s", patient_id, exc)
            return {
                "patient_exists": False,
                "existence_check": ExistenceCheck.ERROR,
                "existence_error": str(exc),
            }
        logger.info("Patient %s %s", patient_id, "exists" if exists else "not found")
        return {
            "patient_exists": exists,
            "existence_check": ExistenceCheck.FOUND if exists else ExistenceCheck.NOT_FOUND,
        }

    def create_patient(self, context: dict[str, Any]) -> dict[str, Any]:
        if context["patient_exists"]:
            logger.info("Patient already exists, skipping insert")
            return {"patient_attempt": Attempt(RecordOutcome.ALREADY_EXISTED, "Existed already")}
        patient = context["order"].patient
        return {
            "patient_attempt": self._persist(
                "patient", self.tables.patient, patient, RIS_PATIENT_SCHEMA
            )
        }

    def create_study(self, context: dict[str, Any]) -> dict[str, Any]:
        study = context["order"].study
        return {
            "study_attempt": self._persist("study", self.tables.study, study, RIS_STUDY_SCHEMA)
        }

    def create_imaging_study(self, context: dict[str, Any]) -> dict[str, Any]:
        imaging_study = context["order"].imagingStudy
        return {
            "imaging_study_attempt": self._persist(
                "imagingStudy",
                self.tables.imaging_study,
                imaging_study,
                RIS_IMAGING_STUDY_SCHEMA,
            )
        }

    def _persist(
        self, label: str, table: str, model: BaseModel, schema: dict[str, Any]
    ) -> Attempt:
        record = model.model_dump(mode="json")

        errors = validate_against_schema(record, schema)
        if errors:
            detail = "; ".join(errors)
            logger.warning("Not inserting %s, invalid record: %s", label, detail)
            return Attempt(RecordOutcome.FAILED, f"Failed: invalid record ({detail})", detail)

        try:
            result = self.store.insert(table, record)
        except StoreError as exc:
            logger.warning("Failed to insert %s: %s", label, exc)
            return Attempt(RecordOutcome.FAILED, f"Failed: {exc}", str(exc))

        if result.success:
            logger.info("%s %s inserted", label, record["id"])
            return Attempt(RecordOutcome.INSERTED, "Inserted")
        if result.duplicate and label == "patient":
            # created by a concurrent message after our existence check
            logger.info("Patient %s created concurrently, treating as existing", record["id"])
            return Attempt(RecordOutcome.ALREADY_EXISTED, "Existed already (duplicate insert rejected)")

        detail = f"HTTP {result.status_code}: {result.data}"
        logger.warning("Failed to insert %s: %s", label, detail)
        return Attempt(RecordOutcome.FAILED, f"Failed: {detail}", detail)

    # -----------------------------------------------------------------------
    # Orchestration
    # -----------------------------------------------------------------------

    def build_pipeline(self) -> DAG:
        """
        One DAG per message. Every create step depends only on the existence
        check, so a crash in one record's step does not skip the others; ties
        run in insertion order, which keeps reporting order deterministic.
        """
        dag = DAG("hl7_ingestion")
        dag.add_task("check_patient", self.check_patient)
        dag.add_task("create_patient", self.create_patient, depends_on=["check_patient"])
        dag.add_task("create_study", self.create_study, depends_on=["check_patient"])
        dag.add_task(
            "create_imaging_study", self.create_imaging_study, depends_on=["check_patient"]
        )
        return dag

    def ingest(self, order: MappedOrder) -> IngestionReport:
        """
        Persist ``order`` and report one outcome per record.

        Record-level failures are part of the report. Only a step crashing
        with an unexpected exception raises (``IngestionError``).
        """
        dag = self.build_pipeline()
        summary = dag.run(initial_context={"order": order})

        failed = dag.failed_tasks()
        if failed:
            raise IngestionError(failed[0].name, failed[0].error or "unknown error")

        check = dag.tasks["check_patient"].result
        attempts = {
            "patient": dag.tasks["create_patient"].result["patient_attempt"],
            "study": dag.tasks["create_study"].result["study_attempt"],
            "imagingStudy": dag.tasks["create_imaging_study"].result["imaging_study_attempt"],
        }

        errors = {label: a.error for label, a in attempts.items() if a.error}
        if check.get("existence_error"):
            errors["existenceCheck"] = check["existence_error"]

        return IngestionReport(
            parsedData=order,
            operations=Operations(**{label: a.outcome for label, a in attempts.items()}),
            debug=DebugInfo(**{label: a.debug for label, a in attempts.items()}),
            existenceCheck=check["existence_check"],
            errors=errors,
            steps={name: TaskSummary(**info) for name, info in summary["tasks"].items()},
        )
