"""
Fraud analysis — cross-field plausibility checks on a corrected field map.

Each rule is an independent pure function:
  - Takes a FraudContext (the corrected data plus document metadata)
  - Returns a list of RuleHit objects (empty = nothing suspicious)
  - Never looks at what another rule found

analyze() folds every rule's hits into a FraudReport. Scores are additive and
no rule suppresses another, so the same document always scores the same.

"Now" is injectable through `today` so reports are reproducible.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from .catalog import is_driving_license, is_vehicle_document
from .models import (
    FraudIndicator,
    FraudIndicatorKind,
    FraudReport,
    RiskLevel,
    Severity,
)
from .ocr_normalizer import is_illegible
from .validators import VALID_STATE_CODES

logger = logging.getLogger(__name__)


# ─── Constants ───────────────────────────────────────────────────────

POOR_IMAGE_QUALITY: frozenset[str] = frozenset({"mala", "ilegible"})
ILLEGIBLE_FIELD_LIMIT = 3
MAX_PLAUSIBLE_AGE = 130
MIN_LICENSE_AGE = 16
MAX_EXPIRY_YEARS_AHEAD = 20
MIN_VEHICLE_YEAR = 1900

# Score at or above which each level applies, highest first
RISK_THRESHOLDS: tuple[tuple[int, RiskLevel], ...] = (
    (70, RiskLevel.CRITICAL),
    (45, RiskLevel.HIGH),
    (20, RiskLevel.MEDIUM),
)

_TEST_NAME_PATTERNS = (
    re.compile(r"^(TEST|PRUEBA|EJEMPLO|DEMO|SAMPLE|XXX|AAAA)"),
    re.compile(r"^(JUAN PEREZ|FULANO|MENGANO|ZUTANO)"),
    re.compile(r"^(NOMBRE|NAME|FIRST|LAST)"),
)
_REPEATED_RUN_RE = re.compile(r"^(.)\1{3,}")
_QUICK_TEST_NAME_RE = re.compile(r"^(TEST|PRUEBA|EJEMPLO|XXX)")

_YMD_RE = re.compile(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})", re.ASCII)
_DMY_RE = re.compile(r"(\d{1,2})[-/](\d{1,2})[-/](\d{4})", re.ASCII)
_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)", re.ASCII)
_LEADING_INT_RE = re.compile(r"\s*(\d+)", re.ASCII)
_VIN_FORBIDDEN_RE = re.compile(r"[IOQ]", re.IGNORECASE)

_BAND_RECOMMENDATIONS: dict[RiskLevel, tuple[str, ...]] = {
    RiskLevel.CRITICAL: (
        "Document should be manually reviewed before acceptance",
        "Request additional supporting documentation",
    ),
    RiskLevel.HIGH: (
        "Consider requesting a clearer image or scan",
        "Cross-reference with additional ID",
    ),
    RiskLevel.MEDIUM: ("Review flagged fields for accuracy",),
    RiskLevel.LOW: (),
}

_KIND_RECOMMENDATIONS: dict[FraudIndicatorKind, str] = {
    FraudIndicatorKind.EXPIRED_DOCUMENT: "Request updated, non-expired document",
    FraudIndicatorKind.TOO_MANY_ILLEGIBLE: "Request a clearer capture of the document",
    FraudIndicatorKind.CROSS_VALIDATION_FAILED: (
        "Verify CURP and RFC against the official RENAPO and SAT registries"
    ),
    FraudIndicatorKind.DATA_INCONSISTENCY: (
        "Verify CURP and RFC against the official RENAPO and SAT registries"
    ),
    FraudIndicatorKind.INVALID_FORMAT: "Inspect the VIN physically on the vehicle",
}


# ─── Data Structures ────────────────────────────────────────────────


@dataclass(frozen=True)
class RuleHit:
    """One triggered rule: the fact observed and what it adds to the score."""

    indicator: FraudIndicator
    score: int


@dataclass(frozen=True)
class FraudContext:
    """Everything a rule may look at. Built once per analyze() call."""

    data: Mapping[str, str]
    document_type: str
    illegible_fields: tuple[str, ...]
    image_quality: Optional[str]
    today: date

    def readable(self, key: str) -> Optional[str]:
        """The value of `key` if present, a string, and fully legible."""
        value = self.data.get(key)
        if not isinstance(value, str) or not value or is_illegible(value):
            return None
        return value


Rule = Callable[[FraudContext], list[RuleHit]]


def _hit(
    kind: FraudIndicatorKind,
    severity: Severity,
    score: int,
    message: str,
    field: Optional[str] = None,
    detail: Optional[str] = None,
) -> RuleHit:
    return RuleHit(
        indicator=FraudIndicator(
            kind=kind, severity=severity, field=field, message=message, detail=detail
        ),
        score=score,
    )


# ─── Derivation Helpers ──────────────────────────────────────────────


def birth_date_from_curp(curp: str) -> Optional[date]:
    """Birth date from CURP positions 4–9 (YYMMDD).

    YY ≤ 30 is read as 20YY, anything else as 19YY. Calendar-impossible dates
    (April 31, February 30) return None instead of rolling into the next month.
    """
    if not curp or len(curp) < 10:
        return None
    digits = curp[4:10]
    if not re.fullmatch(r"\d{6}", digits, re.ASCII):
        return None
    yy, month, day = int(digits[:2]), int(digits[2:4]), int(digits[4:6])
    year = 2000 + yy if yy <= 30 else 1900 + yy
    try:
        return date(year, month, day)
    except ValueError:
        return None


def gender_from_curp(curp: str) -> Optional[str]:
    if not curp or len(curp) < 11:
        return None
    gender = curp[10]
    return gender if gender in ("H", "M") else None


def state_from_curp(curp: str) -> Optional[str]:
    if not curp or len(curp) < 13:
        return None
    return curp[11:13]


def declared_gender(sexo: str) -> Optional[str]:
    """Map the document's sex field to CURP notation (H = hombre, M = mujer)."""
    value = sexo.strip().upper()
    if value.startswith("MASC"):
        return "H"
    if value.startswith("FEM"):
        return "M"
    if value[:1] in ("H", "M"):
        return value[0]
    return None


def parse_document_date(value: str) -> Optional[date]:
    """Parse YYYY-MM-DD, YYYY/MM/DD, DD/MM/YYYY or DD-MM-YYYY found in `value`."""
    if not value:
        return None
    match = _YMD_RE.search(value)
    if match:
        year, month, day = (int(g) for g in match.groups())
    else:
        match = _DMY_RE.search(value)
        if not match:
            return None
        day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_expiry_date(value: str) -> Optional[date]:
    """Like parse_document_date, but a bare year means December 31 of that year.

    For ranges such as "2020-2030" the last year wins.
    """
    parsed = parse_document_date(value)
    if parsed is not None:
        return parsed
    years = _YEAR_RE.findall(value or "")
    if not years:
        return None
    try:
        return date(int(years[-1]), 12, 31)
    except ValueError:
        return None


def _age_in_years(birth: date, today: date) -> float:
    return (today - birth).days / 365.25


# ─── Individual Rules ────────────────────────────────────────────────


def check_image_quality(ctx: FraudContext) -> list[RuleHit]:
    """Poor captures can hide tampering."""
    if ctx.image_quality not in POOR_IMAGE_QUALITY:
        return []
    return [_hit(
        FraudIndicatorKind.TOO_MANY_ILLEGIBLE, Severity.WARNING, 15,
        "Poor image quality may indicate intentional obscuring",
        detail=f"Image quality: {ctx.image_quality}",
    )]


def check_illegible_fields(ctx: FraudContext) -> list[RuleHit]:
    count = len(ctx.illegible_fields)
    if count < ILLEGIBLE_FIELD_LIMIT:
        return []
    return [_hit(
        FraudIndicatorKind.TOO_MANY_ILLEGIBLE, Severity.WARNING, 10 * count,
        "Multiple illegible fields detected",
        detail=f"Illegible fields: {', '.join(ctx.illegible_fields)}",
    )]


def check_curp_state_code(ctx: FraudContext) -> list[RuleHit]:
    curp = ctx.readable("curp")
    state = state_from_curp(curp) if curp else None
    if state is None or state in VALID_STATE_CODES:
        return []
    return [_hit(
        FraudIndicatorKind.STATE_CODE_MISMATCH, Severity.ERROR, 30,
        "Invalid state code in CURP",
        field="curp",
        detail=f'State code "{state}" is not valid',
    )]


def check_curp_gender(ctx: FraudContext) -> list[RuleHit]:
    curp = ctx.readable("curp")
    sexo = ctx.readable("sexo")
    if not curp or not sexo:
        return []
    derived = gender_from_curp(curp)
    declared = declared_gender(sexo)
    if derived is None or declared is None or derived == declared:
        return []
    return [_hit(
        FraudIndicatorKind.GENDER_MISMATCH, Severity.ERROR, 25,
        "Gender in CURP does not match document",
        field="curp",
        detail=(
            f"CURP indicates {'Male' if derived == 'H' else 'Female'}, "
            f"document shows {sexo}"
        ),
    )]


def check_curp_birth_date(ctx: FraudContext) -> list[RuleHit]:
    """Future birth, impossible age, and too young for a driving license.

    Each condition scores on its own. A future birth date yields a negative
    age, so on a license it also counts as underage.
    """
    curp = ctx.readable("curp")
    birth = birth_date_from_curp(curp) if curp else None
    if birth is None:
        return []

    age = _age_in_years(birth, ctx.today)

    hits: list[RuleHit] = []
    if birth > ctx.today:
        hits.append(_hit(
            FraudIndicatorKind.FUTURE_DATE, Severity.CRITICAL, 50,
            "Birth date in CURP is in the future",
            field="curp",
            detail=f"Birth date: {birth.isoformat()}",
        ))
    if age > MAX_PLAUSIBLE_AGE:
        hits.append(_hit(
            FraudIndicatorKind.IMPOSSIBLE_DATE, Severity.CRITICAL, 50,
            "Birth date in CURP indicates impossible age",
            field="curp",
            detail=f"Calculated age: {int(age)} years",
        ))
    if age < MIN_LICENSE_AGE and is_driving_license(ctx.document_type):
        hits.append(_hit(
            FraudIndicatorKind.AGE_INCONSISTENCY, Severity.ERROR, 30,
            "Person is too young for a driver's license",
            field="curp",
            detail=f"Calculated age: {int(age)} years",
        ))
    return hits


def check_birth_date_cross(ctx: FraudContext) -> list[RuleHit]:
    """The birth date printed on the document must agree with the CURP."""
    curp = ctx.readable("curp")
    printed = ctx.readable("fechaNacimiento")
    if not curp or not printed:
        return []
    birth = birth_date_from_curp(curp)
    document_birth = parse_document_date(printed)
    if birth is None or document_birth is None:
        return []
    if abs((birth - document_birth).days) <= 1:
        return []
    return [_hit(
        FraudIndicatorKind.DATA_INCONSISTENCY, Severity.ERROR, 35,
        "Birth date does not match CURP",
        field="fechaNacimiento",
        detail=f"CURP: {birth.isoformat()}, Document: {printed}",
    )]


def check_rfc_matches_curp(ctx: FraudContext) -> list[RuleHit]:
    """A person's RFC shares its first 10 characters with their CURP."""
    rfc = ctx.readable("rfc")
    curp = ctx.readable("curp")
    if not rfc or not curp or len(rfc) != 13 or len(curp) != 18:
        return []
    if rfc[:10] == curp[:10]:
        return []
    return [_hit(
        FraudIndicatorKind.CROSS_VALIDATION_FAILED, Severity.ERROR, 40,
        "RFC does not match CURP",
        field="rfc",
        detail=f"RFC base: {rfc[:10]}, CURP base: {curp[:10]}",
    )]


def check_expiry(ctx: FraudContext) -> list[RuleHit]:
    """Expired documents, and expiry dates no issuer would print.

    Expiry is compared to `today` as a full date. The far-future limit
    compares calendar years only: with today in 2025, anything in 2045 is
    accepted and anything from 2046 on is flagged.
    """
    raw = ctx.readable("vigenciaFin") or ctx.readable("vigencia")
    expiry = parse_expiry_date(raw) if raw else None
    if expiry is None:
        return []

    hits: list[RuleHit] = []
    if expiry < ctx.today:
        hits.append(_hit(
            FraudIndicatorKind.EXPIRED_DOCUMENT, Severity.WARNING, 20,
            "Document appears to be expired",
            field="vigencia",
            detail=f"Expiration: {raw}",
        ))
    if expiry.year > ctx.today.year + MAX_EXPIRY_YEARS_AHEAD:
        hits.append(_hit(
            FraudIndicatorKind.FUTURE_DATE, Severity.ERROR, 25,
            "Expiration date is suspiciously far in the future",
            field="vigencia",
            detail=f"Expiration: {raw}",
        ))
    return hits


def suspicious_name_reason(name: str) -> Optional[str]:
    """Why `name` looks like a placeholder, or None if it looks real."""
    normalized = name.upper().strip()
    if any(pattern.match(normalized) for pattern in _TEST_NAME_PATTERNS):
        return "Appears to be a test/placeholder name"
    if _REPEATED_RUN_RE.match(normalized):
        return "Repeated characters detected"
    if len(normalized) < 5:
        return "Name is unusually short"
    return None


def check_name(ctx: FraudContext) -> list[RuleHit]:
    name = ctx.readable("nombre")
    reason = suspicious_name_reason(name) if name else None
    if reason is None:
        return []
    return [_hit(
        FraudIndicatorKind.NAME_FORMAT_SUSPICIOUS, Severity.WARNING, 20,
        "Name format appears suspicious",
        field="nombre",
        detail=reason,
    )]


def check_vin(ctx: FraudContext) -> list[RuleHit]:
    """Vehicle documents only: a VIN is exactly 17 chars without I, O or Q."""
    if not is_vehicle_document(ctx.document_type):
        return []
    vin = ctx.readable("vin")
    if not vin:
        return []

    hits: list[RuleHit] = []
    if len(vin) != 17:
        hits.append(_hit(
            FraudIndicatorKind.INVALID_FORMAT, Severity.ERROR, 25,
            "VIN has incorrect length",
            field="vin",
            detail=f"VIN length: {len(vin)}, expected: 17",
        ))
    if _VIN_FORBIDDEN_RE.search(vin):
        hits.append(_hit(
            FraudIndicatorKind.INVALID_FORMAT, Severity.WARNING, 15,
            "VIN contains invalid characters (I, O, or Q)",
            field="vin",
            detail=f"VIN: {vin}",
        ))
    return hits


def check_vehicle_year(ctx: FraudContext) -> list[RuleHit]:
    if not is_vehicle_document(ctx.document_type):
        return []
    anio = ctx.readable("anio")
    match = _LEADING_INT_RE.match(anio) if anio else None
    if not match:
        return []
    year = int(match.group(1))
    if MIN_VEHICLE_YEAR <= year <= ctx.today.year + 1:
        return []
    return [_hit(
        FraudIndicatorKind.IMPOSSIBLE_DATE, Severity.ERROR, 30,
        "Vehicle year is impossible",
        field="anio",
        detail=f"Year: {year}",
    )]


FRAUD_RULES: tuple[Rule, ...] = (
    check_image_quality,
    check_illegible_fields,
    check_curp_state_code,
    check_curp_gender,
    check_curp_birth_date,
    check_birth_date_cross,
    check_rfc_matches_curp,
    check_expiry,
    check_name,
    check_vin,
    check_vehicle_year,
)


# ─── Orchestrator ────────────────────────────────────────────────────


def risk_level_for(score: int) -> RiskLevel:
    for threshold, level in RISK_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.LOW


def recommendations_for(
    level: RiskLevel, indicators: Iterable[FraudIndicator]
) -> tuple[str, ...]:
    """Band recommendations first, then one per triggered category, no repeats."""
    kind_recs = [
        _KIND_RECOMMENDATIONS[i.kind] for i in indicators if i.kind in _KIND_RECOMMENDATIONS
    ]
    return tuple(dict.fromkeys([*_BAND_RECOMMENDATIONS[level], *kind_recs]))


def analyze(
    corrected_data: Mapping[str, str],
    document_type: str = "",
    illegible_fields: Iterable[str] = (),
    image_quality: Optional[str] = None,
    *,
    today: Optional[date] = None,
) -> FraudReport:
    """Run every fraud rule and score the document.

    Args:
        corrected_data: Field map after post-processing.
        document_type: Declared or detected document type (free text).
        illegible_fields: Keys the extractor could not read.
        image_quality: Extractor's quality label ("buena", "regular", "mala", "ilegible").
        today: Reference date for age and expiry checks (defaults to today).

    Returns:
        FraudReport with the score clamped to [0, 100].
    """
    ctx = FraudContext(
        data=corrected_data,
        document_type=document_type or "",
        illegible_fields=tuple(illegible_fields),
        image_quality=image_quality,
        today=today or date.today(),
    )

    hits = [hit for rule in FRAUD_RULES for hit in rule(ctx)]
    score = min(100, sum(hit.score for hit in hits))
    level = risk_level_for(score)
    indicators = tuple(hit.indicator for hit in hits)

    for hit in hits:
        logger.debug("Fraud rule hit (+%d): %s", hit.score, hit.indicator.message)

    return FraudReport(
        is_authentic=level not in (RiskLevel.HIGH, RiskLevel.CRITICAL),
        risk_level=level,
        risk_score=score,
        indicators=indicators,
        recommendations=recommendations_for(level, indicators),
    )


def quick_fraud_check(data: Mapping[str, str]) -> bool:
    """Cheap pre-screen. False means the document is obviously bogus."""
    name = data.get("nombre")
    if isinstance(name, str) and _QUICK_TEST_NAME_RE.match(name.upper()):
        return False

    curp = data.get("curp")
    if isinstance(curp, str) and len(curp) == 18 and not is_illegible(curp):
        if gender_from_curp(curp) is None:
            return False
        if state_from_curp(curp) not in VALID_STATE_CODES:
            return False

    return True
