"""
Segment tokenizer for pipe-delimited HL7 v2 messages.

The tokenizer is deliberately forgiving: it performs no grammar checks, so a
garbled line turns into a degenerate segment instead of failing the message.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ris_ingest.errors import MessageDecodeError
from ris_ingest.hl7.accessors import field_at

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "|"

# CRLF, LF, or the bare CR that HL7 uses as its native segment terminator
_LINE_BREAK = re.compile(r"\r\n|\n|\r")


@dataclass(frozen=True)
class Segment:
    """One message line. ``fields[0]`` is the segment name (MSH, PID, ...)."""

    name: str
    fields: tuple[str, ...]

    def field(self, index: int) -> str:
        return field_at(self.fields, index)


def decode_message(payload: bytes, encoding: str = "utf-8") -> str:
    """Decode a raw request body, dropping a leading byte-order mark."""
    try:
        text = payload.decode(encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise MessageDecodeError(f"Payload is not valid {encoding} text: {exc}") from exc
    return text.lstrip("\ufeff")


def tokenize(text: str) -> list[Segment]:
    """Split a message into segments, preserving source order."""
    segments = []
    for line in _LINE_BREAK.split(text):
        if not line.strip():
            continue
        fields = tuple(line.split(FIELD_SEPARATOR))
        segments.append(Segment(name=fields[0], fields=fields))
    logger.debug("Tokenized %d segments: %s", len(segments), [s.name for s in segments])
    return segments


def find_segment(segments: list[Segment], name: str) -> Segment | None:
    """First segment called ``name``, or ``None``."""
    for segment in segments:
        if segment.name == name:
            return segment
    return None
