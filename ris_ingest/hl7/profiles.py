"""
Sender profiles: where each sending system puts the order fields.

Sending systems disagree on which OBR field carries the accession number.
Rather than guessing, every source is bound to one explicit profile.
Field numbers follow HL7 numbering, which matches tokenizer indices because
index 0 holds the segment name.
"""

from __future__ import annotations

from dataclasses import dataclass

from ris_ingest.errors import UnknownProfileError


@dataclass(frozen=True)
class SenderProfile:
    name: str
    # OBR fields tried in order; the first non-empty one wins
    accession_fields: tuple[int, ...]
    procedure_field: int = 4
    modality_field: int = 24
    default_modality: str = "US"
    priority_field: int = 9  # TQ1-9
    start_datetime_field: int = 7  # TQ1-7


PLACER = SenderProfile(name="placer", accession_fields=(2, 3))
FILLER_PLACER_FIELD = SenderProfile(name="filler-placer-field", accession_fields=(18,))

PROFILES: dict[str, SenderProfile] = {p.name: p for p in (PLACER, FILLER_PLACER_FIELD)}

DEFAULT_PROFILE = PLACER


def get_profile(name: str | None) -> SenderProfile:
    if not name:
        return DEFAULT_PROFILE
    try:
        return PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise UnknownProfileError(f"Unknown sender profile '{name}' (known: {known})") from None
