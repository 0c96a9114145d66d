"""
Permissive lookups over HL7 field values.

Every accessor returns a string. Missing fields, missing components and
``None`` all collapse to ``""`` so the mapper never has to guard an index.
"""

from __future__ import annotations

from collections.abc import Sequence

COMPONENT_SEPARATOR = "^"


def field_at(fields: Sequence[str], index: int) -> str:
    """Return ``fields[index]`` or ``""`` when the segment is shorter."""
    if index < 0 or index >= len(fields):
        return ""
    return fields[index] or ""


def component(value: str | None, index: int) -> str:
    """Return the ``index``-th ``^`` component of a field value (0-based)."""
    if not value:
        return ""
    parts = value.split(COMPONENT_SEPARATOR)
    if index < 0 or index >= len(parts):
        return ""
    return parts[index]


def first_component(value: str | None) -> str:
    """Substring before the first ``^``, e.g. ``"12345^^^MRN"`` -> ``"12345"``."""
    return component(value, 0)
