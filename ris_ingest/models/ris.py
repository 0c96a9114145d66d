"""
RIS tables written by the ingestion service.

Column attributes carry the same camelCase names as the mapped records so a
record dict can be inserted as-is. Ids are the deterministic business keys
(``patient-<mrn>``, ``study-<accession>``, ``imaging-<accession>``); the
primary-key constraint on ``ris_patient.id`` is what resolves two messages
racing to create the same patient.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from ris_ingest.models.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Patient
# ---------------------------------------------------------------------------
class RisPatient(Base):
    __tablename__ = "ris_patient"

    id = Column(String(96), primary_key=True)
    medicalRecordNumber = Column(String(64), nullable=False, comment="Medical Record Number")
    givenName = Column(String(128), default="")
    familyName = Column(String(128), default="")
    gender = Column(String(16), nullable=False, default="other")
    birthDate = Column(String(19), default="", comment="ISO date or date-time, or empty")
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_ris_patient_mrn", "medicalRecordNumber"),)


# ---------------------------------------------------------------------------
# Study – one imaging order
# ---------------------------------------------------------------------------
class RisStudy(Base):
    __tablename__ = "ris_study"

    id = Column(String(96), primary_key=True)
    accessionNumber = Column(String(64), nullable=False)
    medicalRecordNumber = Column(String(64), nullable=False)
    displayName = Column(String(256), default="")
    urgent = Column(Boolean, default=False, nullable=False, comment="cito / STAT priority")
    examinationCode = Column(String(64), default="")
    examinationName = Column(String(256), default="")
    status = Column(String(32), default="registered")
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_ris_study_mrn", "medicalRecordNumber"),)


# ---------------------------------------------------------------------------
# Imaging study – counts are filled in by the archive once images arrive
# ---------------------------------------------------------------------------
class RisImagingStudy(Base):
    __tablename__ = "ris_imaging_study"

    id = Column(String(96), primary_key=True)
    startedAt = Column(String(19), default="", comment="ISO date-time or empty")
    status = Column(String(32), default="registered")
    modality = Column(String(16), default="")
    numberOfSeries = Column(Integer, default=0, nullable=False)
    numberOfInstances = Column(Integer, default=0, nullable=False)
    studyId = Column(String(96), ForeignKey("ris_study.id"), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
