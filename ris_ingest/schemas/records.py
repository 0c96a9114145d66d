"""
JSON schemas checked before a record is sent to the store.

They only enforce what the store needs to key and link a row: an id with a
non-empty business key behind its prefix, plus the MRN for studies and the
study reference for imaging studies. Everything else is best effort.
"""

RIS_PATIENT_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "RIS Patient",
    "type": "object",
    "required": ["id", "medicalRecordNumber"],
    "properties": {
        "id": {
            "type": "string",
            "pattern": "^patient-.+$",
            "description": "'patient-' + medical record number.",
        },
        "medicalRecordNumber": {"type": "string"},
        "givenName": {"type": "string"},
        "familyName": {"type": "string"},
        "gender": {"type": "string", "enum": ["male", "female", "other"]},
        "birthDate": {
            "type": "string",
            "description": (
                "ISO 8601 date or date-time (PID-7 may carry a time), "
                "or empty when the source was unparseable."
            ),
        },
    },
}


RIS_STUDY_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "RIS Study",
    "type": "object",
    "required": ["id", "accessionNumber", "medicalRecordNumber"],
    "properties": {
        "id": {
            "type": "string",
            "pattern": "^study-.+$",
            "description": "'study-' + accession number.",
        },
        "accessionNumber": {"type": "string"},
        "medicalRecordNumber": {
            "type": "string",
            "minLength": 1,
            "description": "Links the study to its patient.",
        },
        "urgent": {"type": "boolean"},
        "status": {"type": "string"},
    },
}


RIS_IMAGING_STUDY_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "RIS ImagingStudy",
    "type": "object",
    "required": ["id", "studyId"],
    "properties": {
        "id": {"type": "string", "pattern": "^imaging-.+$"},
        "studyId": {
            "type": "string",
            "pattern": "^study-.+$",
            "description": "Foreign reference to the study row.",
        },
        "numberOfSeries": {"type": "integer", "minimum": 0},
        "numberOfInstances": {"type": "integer", "minimum": 0},
    },
}
