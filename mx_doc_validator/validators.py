"""
Deterministic field validators — the auto-correcting layer.

These validators run PURE CODE checks on single extracted values.
They never call a service. They never raise on bad input.

Each validator function:
  - Takes the raw string the extractor produced (or None)
  - Repairs what OCR predictably breaks (lengths, look-alike glyphs, check digits)
  - Returns a fresh ValidationOutcome with the corrections it made
  - Is independently testable

Correcting twice changes nothing: every validator is idempotent on its own
`corrected` output.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from .exceptions import UnsupportedFieldError
from .models import FieldKind, OCRContext, ValidationOutcome
from .ocr_normalizer import normalize

logger = logging.getLogger(__name__)

Validator = Callable[[Optional[str]], ValidationOutcome]


# ─── Constants ───────────────────────────────────────────────────────

# RENAPO state-of-birth codes; NE = born abroad
VALID_STATE_CODES: frozenset[str] = frozenset({
    "AS", "BC", "BS", "CC", "CL", "CM", "CS", "CH", "DF", "DG",
    "GT", "GR", "HG", "JC", "MC", "MN", "MS", "NT", "NL", "OC",
    "PL", "QT", "QR", "SP", "SL", "SR", "TC", "TS", "TL", "VZ",
    "YN", "ZS", "NE",
})

CURP_ALPHABET = "0123456789ABCDEFGHIJKLMNÑOPQRSTUVWXYZ"
CLABE_WEIGHTS: tuple[int, ...] = (3, 7, 1, 3, 7, 1, 3, 7, 1, 3, 7, 1, 3, 7, 1, 3, 7)

_CURP_RE = re.compile(r"^[A-Z]{4}\d{6}[HM][A-Z]{2}[A-Z]{3}[A-Z0-9]\d$", re.ASCII)
_CURP_LETTER_POSITIONS = (0, 1, 2, 3, 11, 12, 13, 14, 15)
_CURP_DIGIT_POSITIONS = (4, 5, 6, 7, 8, 9)
_CURP_GENDER_POS = 10
_CURP_HOMOCLAVE_POS = 16
_CURP_CHECK_POS = 17
# Glyphs OCR produces for a smudged "H"
_GENDER_LOOKALIKES = frozenset({"4", "A", "|", "I", "1"})

_RFC_PERSON_RE = re.compile(r"^[A-Z]{4}\d{6}[A-Z0-9]{3}$", re.ASCII)
_RFC_COMPANY_RE = re.compile(r"^[A-Z]{3}\d{6}[A-Z0-9]{3}$", re.ASCII)

_VIN_RE = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
_VIN_FORBIDDEN = str.maketrans({"I": "1", "O": "0", "Q": "0"})

_NSS_RE = re.compile(r"^\d{11}$", re.ASCII)
_PLATE_RE = re.compile(r"^[A-Z0-9]{3,4}[A-Z0-9]{3,4}$")
_NON_DIGIT_RE = re.compile(r"\D", re.ASCII)


def _empty() -> ValidationOutcome:
    return ValidationOutcome(valid=False, corrected="", confidence=0.0)


# ─── Check Digits ────────────────────────────────────────────────────


def curp_check_digit(first17: str) -> Optional[int]:
    """Official CURP verification digit over the first 17 characters.

    Each character's index in CURP_ALPHABET is weighted by (18 - position);
    the digit is (10 - sum % 10) % 10. Returns None if any character falls
    outside the alphabet.
    """
    if len(first17) != 17 or any(ch not in CURP_ALPHABET for ch in first17):
        return None
    total = sum(CURP_ALPHABET.index(ch) * (18 - i) for i, ch in enumerate(first17))
    return (10 - total % 10) % 10


def clabe_check_digit(first17: str) -> int:
    """CLABE control digit: sum of (digit × weight) mod 10 over 17 digits."""
    total = sum((int(d) * w) % 10 for d, w in zip(first17, CLABE_WEIGHTS))
    return (10 - total % 10) % 10


def nss_check_digit(first10: str) -> int:
    """IMSS Luhn variant: double even-index digits, fold values above 9."""
    total = 0
    for i, ch in enumerate(first10):
        d = int(ch)
        if i % 2 == 0:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return (10 - total % 10) % 10


# ─── Individual Validators ───────────────────────────────────────────


def validate_curp(raw: Optional[str]) -> ValidationOutcome:
    """Validate and repair an 18-character CURP.

    Letter positions get alpha-normalized, the birth date numeric-normalized,
    the gender forced to H when OCR produced an H look-alike, and the final
    verification digit is always recomputed: whatever OCR read there is
    replaced by the value the official algorithm yields.
    """
    if not raw:
        return _empty()

    value = normalize(raw)
    corrections: list[str] = []

    if len(value) == 17:
        value += "0"
        corrections.append("Added missing character")
    elif len(value) == 19:
        value = value[:18]
        corrections.append("Removed extra character")

    chars = list(value)

    def _fix(pos: int, context: OCRContext) -> None:
        original = chars[pos]
        chars[pos] = normalize(original, context)
        if chars[pos] != original:
            corrections.append(f"Position {pos}: {original} → {chars[pos]}")

    for pos in _CURP_LETTER_POSITIONS:
        if pos < len(chars):
            _fix(pos, OCRContext.ALPHA)

    for pos in _CURP_DIGIT_POSITIONS:
        if pos < len(chars):
            _fix(pos, OCRContext.NUMERIC)

    if len(chars) > _CURP_GENDER_POS and chars[_CURP_GENDER_POS] in _GENDER_LOOKALIKES:
        original = chars[_CURP_GENDER_POS]
        chars[_CURP_GENDER_POS] = "H"
        corrections.append(f"Position {_CURP_GENDER_POS}: {original} → H")

    # Digit for births up to 1999, letter from 2000 on
    if len(chars) > _CURP_HOMOCLAVE_POS and not chars[_CURP_HOMOCLAVE_POS].isalpha():
        _fix(_CURP_HOMOCLAVE_POS, OCRContext.NUMERIC)

    if len(chars) == 18:
        expected = curp_check_digit("".join(chars[:17]))
        if expected is not None and chars[_CURP_CHECK_POS] != str(expected):
            corrections.append(
                f"Verification digit: {chars[_CURP_CHECK_POS]} → {expected}"
            )
            chars[_CURP_CHECK_POS] = str(expected)

    result = "".join(chars)
    state_valid = result[11:13] in VALID_STATE_CODES
    shape_valid = bool(_CURP_RE.match(result))

    confidence = 1.0 - 0.03 * len(corrections)
    if not state_valid:
        confidence -= 0.2
    if not shape_valid:
        confidence -= 0.3
    confidence = max(0.3, confidence)

    if corrections:
        logger.debug("CURP %r corrected to %r: %s", raw, result, corrections)

    return ValidationOutcome(
        valid=shape_valid and state_valid,
        corrected=result,
        confidence=confidence,
        corrections=tuple(corrections),
    )


def validate_rfc(raw: Optional[str]) -> ValidationOutcome:
    """Validate and repair an RFC (13 chars for people, 12 for companies)."""
    if not raw:
        return _empty()

    value = normalize(raw)
    corrections: list[str] = []

    if len(value) == 11:
        value += "0"
        corrections.append("Added missing character")
    elif len(value) == 14:
        value = value[:13]
        corrections.append("Removed extra character")

    letter_count = 4 if len(value) == 13 else 3
    chars = list(value)

    for pos, context in [(i, OCRContext.ALPHA) for i in range(letter_count)] + [
        (i, OCRContext.NUMERIC) for i in range(letter_count, letter_count + 6)
    ]:
        if pos >= len(chars):
            break
        original = chars[pos]
        chars[pos] = normalize(original, context)
        if chars[pos] != original:
            corrections.append(f"Position {pos}: {original} → {chars[pos]}")

    result = "".join(chars)
    is_valid = bool(_RFC_PERSON_RE.match(result) or _RFC_COMPANY_RE.match(result))
    confidence = max(0.7, 1.0 - 0.05 * len(corrections)) if is_valid else 0.4

    return ValidationOutcome(
        valid=is_valid,
        corrected=result,
        confidence=confidence,
        corrections=tuple(corrections),
    )


def validate_clabe(raw: Optional[str]) -> ValidationOutcome:
    """Validate an 18-digit CLABE against its weighted control digit.

    A checksum mismatch is reported, not repaired: unlike a CURP, a wrong
    CLABE digit could be any of the 18 positions.
    """
    if not raw:
        return _empty()

    value = _NON_DIGIT_RE.sub("", normalize(raw, OCRContext.NUMERIC))
    corrections: list[str] = []

    if len(value) == 17:
        value = "0" + value
        corrections.append("Added leading zero")
    elif len(value) == 19:
        value = value[:18]
        corrections.append("Removed extra digit")

    if len(value) != 18:
        corrections.append(f"Invalid length: {len(value)} digits")
        return ValidationOutcome(
            valid=False, corrected=value, confidence=0.6, corrections=tuple(corrections)
        )

    expected = clabe_check_digit(value[:17])
    actual = int(value[17])
    checksum_valid = expected == actual
    if not checksum_valid:
        corrections.append(f"Checksum mismatch: expected {expected}, got {actual}")

    return ValidationOutcome(
        valid=checksum_valid,
        corrected=value,
        confidence=0.95 if checksum_valid else 0.6,
        corrections=tuple(corrections),
    )


def validate_vin(raw: Optional[str]) -> ValidationOutcome:
    """Validate a 17-character VIN; I, O and Q never appear in one."""
    if not raw:
        return _empty()

    value = normalize(raw)
    corrections: list[str] = []

    fixed = value.translate(_VIN_FORBIDDEN)
    if fixed != value:
        value = fixed
        corrections.append("Replaced I/O/Q with 1/0/0")

    is_valid = bool(_VIN_RE.match(value))
    return ValidationOutcome(
        valid=is_valid,
        corrected=value,
        confidence=0.9 if is_valid else 0.4,
        corrections=tuple(corrections),
    )


def validate_nss(raw: Optional[str]) -> ValidationOutcome:
    """Validate an 11-digit IMSS social-security number and fix its check digit."""
    if not raw:
        return _empty()

    value = _NON_DIGIT_RE.sub("", normalize(raw, OCRContext.NUMERIC))
    corrections: list[str] = []

    if len(value) == 10:
        value = "0" + value
        corrections.append("Added leading zero")
    elif len(value) == 12:
        value = value[:11]
        corrections.append("Removed extra digit")
    elif len(value) != 11:
        return ValidationOutcome(
            valid=False,
            corrected=value,
            confidence=0.3,
            corrections=(f"Invalid length: {len(value)} digits",),
        )

    expected = str(nss_check_digit(value[:10]))
    if value[10] != expected:
        corrections.append(f"Check digit: {value[10]} → {expected}")
        value = value[:10] + expected

    is_valid = bool(_NSS_RE.match(value))
    confidence = max(0.7, 1.0 - 0.1 * len(corrections)) if is_valid else 0.4

    return ValidationOutcome(
        valid=is_valid,
        corrected=value,
        confidence=confidence,
        corrections=tuple(corrections),
    )


def validate_placas(raw: Optional[str]) -> ValidationOutcome:
    """License plates carry no checksum; only the shape can be checked."""
    if not raw:
        return _empty()

    value = normalize(raw)

    if 6 <= len(value) <= 8:
        is_valid = bool(_PLATE_RE.match(value))
        return ValidationOutcome(
            valid=is_valid, corrected=value, confidence=0.85 if is_valid else 0.5
        )

    return ValidationOutcome(valid=False, corrected=value, confidence=0.3)


# ─── Dispatch ────────────────────────────────────────────────────────

FIELD_VALIDATORS: dict[FieldKind, Validator] = {
    FieldKind.CURP: validate_curp,
    FieldKind.RFC: validate_rfc,
    FieldKind.CLABE: validate_clabe,
    FieldKind.VIN: validate_vin,
    FieldKind.NSS: validate_nss,
    FieldKind.PLACAS: validate_placas,
}

VALIDATABLE_FIELDS: tuple[str, ...] = tuple(kind.value for kind in FIELD_VALIDATORS)


def validate_field(field: FieldKind | str, value: Optional[str]) -> ValidationOutcome:
    """Run the validator registered for `field`.

    Raises:
        UnsupportedFieldError: if `field` names a kind with no validator.
    """
    kind = field if isinstance(field, FieldKind) else FieldKind.from_key(field)
    validator = FIELD_VALIDATORS.get(kind)
    if validator is None:
        raise UnsupportedFieldError(
            f"Invalid field type: '{field}'",
            details={"valid_fields": list(VALIDATABLE_FIELDS)},
        )
    return validator(value)
