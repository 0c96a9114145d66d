"""
Normalized RIS records produced from one HL7 order message.

Attribute names double as store column names, so they stay camelCase.
Records are frozen: the coordinator may persist them but never edit them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Patient(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    medicalRecordNumber: str
    givenName: str = ""
    familyName: str = ""
    gender: Gender = Gender.OTHER
    birthDate: str = ""


class Study(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    accessionNumber: str
    medicalRecordNumber: str
    displayName: str = ""
    urgent: bool = False
    examinationCode: str = ""
    examinationName: str = ""
    status: str = "registered"


class ImagingStudy(BaseModel):
    """Placeholder imaging study; series/instance counts are filled in later by the archive."""

    model_config = ConfigDict(frozen=True)

    id: str
    startedAt: str = ""
    status: str = "registered"
    modality: str = ""
    numberOfSeries: int = 0
    numberOfInstances: int = 0
    studyId: str


class MappedOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    patient: Patient
    study: Study
    imagingStudy: ImagingStudy
