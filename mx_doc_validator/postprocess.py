"""
Extraction post-processing — runs the field validators over a whole field map.

Strategy:
  1. Anything the extractor marked unreadable ("***" or a "*" anywhere) is
     copied through verbatim and listed in illegible_fields. We never guess
     characters the extractor itself could not see.
  2. Identifier fields go through their validator; the corrected value
     replaces the raw one and every change is logged for the audit trail.
  3. Names get cosmetic formatting only.
  4. Everything else passes through untouched.

This stage never fails: odd keys and odd values are skipped, not rejected.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from statistics import fmean
from typing import Any

from .models import FieldKind, PostProcessResult
from .ocr_normalizer import is_illegible
from .validators import FIELD_VALIDATORS

logger = logging.getLogger(__name__)

# Confidence reported when no identifier field was present to score
DEFAULT_CONFIDENCE = 0.3

# Values extractors emit instead of leaving a field out
PLACEHOLDER_VALUES: frozenset[str] = frozenset({"N/A", "No visible", "No disponible"})

_WHITESPACE_RE = re.compile(r"\s+")


# ─── Public API ──────────────────────────────────────────────────────


def clean_extracted_data(raw: Mapping[str, Any]) -> dict[str, str]:
    """Drop empty and placeholder values; stringify scalar values.

    Nested structures (lists, dicts) are not field values and are dropped.
    """
    cleaned: dict[str, str] = {}
    for key, value in raw.items():
        if value is None or isinstance(value, (list, dict, bool)):
            continue
        text = value if isinstance(value, str) else str(value)
        if not text or text in PLACEHOLDER_VALUES:
            continue
        cleaned[key] = text
    return cleaned


def post_process(field_map: Mapping[str, Any]) -> PostProcessResult:
    """Correct every recognized field of an extracted field map.

    Args:
        field_map: Field key → value, as produced by the extraction stage.

    Returns:
        PostProcessResult with the corrected map, the correction log, the mean
        validator confidence and the fields marked illegible.
    """
    corrected: dict[str, Any] = {}
    corrections: list[str] = []
    illegible: list[str] = []
    confidences: dict[str, float] = {}

    for key, raw in field_map.items():
        corrected[key] = raw
        if not isinstance(raw, str) or not raw:
            continue

        kind = FieldKind.from_key(key)
        if kind == FieldKind.OTHER:
            continue

        if is_illegible(raw):
            illegible.append(key)
            continue

        if kind.is_name:
            corrected[key] = format_name(raw, upper=kind == FieldKind.RAZON_SOCIAL)
            continue

        if not kind.has_validator:
            continue

        outcome = FIELD_VALIDATORS[kind](raw)
        corrected[key] = outcome.corrected
        confidences[key] = outcome.confidence
        if outcome.corrected != raw:
            corrections.append(f'{key.upper()}: "{raw}" → "{outcome.corrected}"')

    overall = fmean(confidences.values()) if confidences else DEFAULT_CONFIDENCE

    if corrections or illegible:
        logger.debug(
            "Post-processed %d field(s): %d correction(s), illegible=%s",
            len(field_map), len(corrections), illegible,
        )

    return PostProcessResult(
        corrected_data={k: v for k, v in corrected.items() if isinstance(v, str)},
        corrections=tuple(corrections),
        overall_confidence=overall,
        illegible_fields=tuple(illegible),
        field_confidences=confidences,
    )


def format_name(raw: str, upper: bool = False) -> str:
    """Trim, collapse whitespace, then title-case (people) or upper-case (companies)."""
    collapsed = _WHITESPACE_RE.sub(" ", raw.strip())
    if upper:
        return collapsed.upper()
    return " ".join(word[:1].upper() + word[1:].lower() for word in collapsed.split(" "))
