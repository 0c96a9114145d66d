"""
Maps tokenized HL7 order messages onto RIS records.

Demonstrates:
- Positional field extraction driven by a per-sender profile
- Total derivations: missing or malformed input degrades to documented
  defaults ("" / other / False / 0) and never raises
- Deterministic ids, so re-ingesting a message yields the same keys
"""

from __future__ import annotations

import logging

from ris_ingest.hl7.accessors import component, field_at, first_component
from ris_ingest.hl7.profiles import DEFAULT_PROFILE, SenderProfile
from ris_ingest.hl7.tokenizer import Segment, find_segment
from ris_ingest.schemas.domain import (
    Gender,
    ImagingStudy,
    MappedOrder,
    Patient,
    Study,
)

logger = logging.getLogger(__name__)

PATIENT_ID_PREFIX = "patient-"
STUDY_ID_PREFIX = "study-"
IMAGING_STUDY_ID_PREFIX = "imaging-"

INITIAL_STATUS = "registered"

# PID fields
PID_IDENTIFIER = 3
PID_NAME = 5
PID_BIRTH_DATE = 7
PID_SEX = 8


# ---------------------------------------------------------------------------
# Field derivations
# ---------------------------------------------------------------------------


def patient_id(mrn: str) -> str:
    return PATIENT_ID_PREFIX + mrn


def study_id(accession_number: str) -> str:
    return STUDY_ID_PREFIX + accession_number


def imaging_study_id(accession_number: str) -> str:
    return IMAGING_STUDY_ID_PREFIX + accession_number


def map_gender(code: str | None) -> Gender:
    """HL7 administrative sex to ``Gender``. Anything unrecognized is ``other``."""
    normalized = (code or "").strip().lower()
    if normalized in ("m", "male"):
        return Gender.MALE
    if normalized in ("f", "female"):
        return Gender.FEMALE
    return Gender.OTHER


def hl7_datetime_to_iso(value: str | None) -> str:
    """
    Convert ``YYYYMMDD[HHMMSS[.fff]]`` to ``YYYY-MM-DD[THH:MM:SS]``.

    Values shorter than eight characters are unparseable and give ``""``.
    Fractional seconds are dropped; a short time part is left-padded with
    zeros to six digits before it is sliced.
    """
    if not value or len(value) < 8:
        return ""

    year, month, day = value[0:4], value[4:6], value[6:8]
    result = f"{year}-{month}-{day}"

    time_part = value[8:].split(".")[0]
    if time_part:
        padded = time_part.rjust(6, "0")
        result += f"T{padded[0:2]}:{padded[2:4]}:{padded[4:6]}"
    return result


def is_urgent(priority: str | None) -> bool:
    """STAT orders are urgent; e.g. ``S^Stat^HL70078`` but not ``R^Routine^HL70078``."""
    return "stat" in (priority or "").lower()


def parse_person_name(value: str | None) -> tuple[str, str]:
    """XPN field -> ``(family, given)``."""
    return component(value, 0), component(value, 1)


def _display_name(given: str, family: str) -> str:
    return " ".join(part for part in (given, family) if part)


def _accession_number(obr: tuple[str, ...], profile: SenderProfile) -> str:
    for index in profile.accession_fields:
        accession = first_component(field_at(obr, index))
        if accession:
            return accession
    return ""


def _fields(segments: list[Segment], name: str) -> tuple[str, ...]:
    segment = find_segment(segments, name)
    if segment is None:
        logger.debug("Segment %s not present, using defaults", name)
        return ()
    return segment.fields


# ---------------------------------------------------------------------------
# Message mapping
# ---------------------------------------------------------------------------


def map_message(
    segments: list[Segment], profile: SenderProfile = DEFAULT_PROFILE
) -> MappedOrder:
    """Build the Patient / Study / ImagingStudy triple for one message."""
    pid = _fields(segments, "PID")
    obr = _fields(segments, "OBR")
    tq1 = _fields(segments, "TQ1")

    mrn = first_component(field_at(pid, PID_IDENTIFIER))
    family_name, given_name = parse_person_name(field_at(pid, PID_NAME))

    # Study.id and ImagingStudy.studyId both come from this single extraction
    accession_number = _accession_number(obr, profile)
    shared_study_id = study_id(accession_number)

    procedure = field_at(obr, profile.procedure_field)
    modality = first_component(field_at(obr, profile.modality_field))

    patient = Patient(
        id=patient_id(mrn),
        medicalRecordNumber=mrn,
        givenName=given_name,
        familyName=family_name,
        gender=map_gender(field_at(pid, PID_SEX)),
        birthDate=hl7_datetime_to_iso(field_at(pid, PID_BIRTH_DATE)),
    )
    study = Study(
        id=shared_study_id,
        accessionNumber=accession_number,
        medicalRecordNumber=mrn,
        displayName=_display_name(given_name, family_name),
        urgent=is_urgent(field_at(tq1, profile.priority_field)),
        examinationCode=component(procedure, 0),
        examinationName=component(procedure, 1),
        status=INITIAL_STATUS,
    )
    imaging_study = ImagingStudy(
        id=imaging_study_id(accession_number),
        startedAt=hl7_datetime_to_iso(field_at(tq1, profile.start_datetime_field)),
        status=INITIAL_STATUS,
        modality=modality or profile.default_modality,
        numberOfSeries=0,
        numberOfInstances=0,
        studyId=shared_study_id,
    )

    logger.info(
        "Mapped message with profile '%s': patient=%s study=%s",
        profile.name,
        patient.id,
        study.id,
    )
    return MappedOrder(patient=patient, study=study, imagingStudy=imaging_study)
