"""
Pydantic models for document fields and analysis results.

Every value the core produces is a frozen model: created once per call,
never mutated afterwards. Ordered collections are tuples for the same reason.

Python attributes are snake_case; the JSON form uses camelCase aliases so the
HTTP layer speaks the same contract as the upstream extraction service.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


_VALUE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ─── Field Kinds ─────────────────────────────────────────────────────


class FieldKind(str, Enum):
    """The closed set of field keys the pipeline understands.

    Anything the extractor returns outside this set maps to OTHER and is
    passed through untouched.
    """

    CURP = "curp"
    RFC = "rfc"
    CLABE = "clabe"
    VIN = "vin"
    NSS = "nss"
    PLACAS = "placas"
    NOMBRE = "nombre"
    RAZON_SOCIAL = "razonSocial"
    VIGENCIA = "vigencia"
    VIGENCIA_FIN = "vigenciaFin"
    ANIO = "anio"
    SEXO = "sexo"
    FECHA_NACIMIENTO = "fechaNacimiento"
    OTHER = "other"

    @classmethod
    def from_key(cls, key: str) -> FieldKind:
        """Map a raw field-map key to its kind (unknown keys → OTHER)."""
        try:
            kind = cls(key)
        except ValueError:
            return cls.OTHER
        return kind

    @property
    def has_validator(self) -> bool:
        return self in _VALIDATED_KINDS

    @property
    def is_name(self) -> bool:
        return self in (FieldKind.NOMBRE, FieldKind.RAZON_SOCIAL)


_VALIDATED_KINDS = frozenset({
    FieldKind.CURP, FieldKind.RFC, FieldKind.CLABE,
    FieldKind.VIN, FieldKind.NSS, FieldKind.PLACAS,
})


class OCRContext(str, Enum):
    """Which glyph family a character position is expected to hold."""

    NUMERIC = "numeric"
    ALPHA = "alpha"
    ALPHANUMERIC = "alphanumeric"


# ─── Validation Outcome ──────────────────────────────────────────────


class ValidationOutcome(BaseModel):
    """Result of validating (and auto-correcting) one field value."""

    model_config = _VALUE_CONFIG

    valid: bool
    corrected: str
    confidence: float = Field(ge=0.0, le=1.0)
    corrections: tuple[str, ...] = ()


# ─── Fraud Indicators ────────────────────────────────────────────────


class Severity(str, Enum):
    """Severity of a fraud indicator."""

    INFO = "info"  # Observation only
    WARNING = "warning"  # Suspicious, needs human review
    ERROR = "error"  # Inconsistent data
    CRITICAL = "critical"  # Physically impossible data


class FraudIndicatorKind(str, Enum):
    DATA_INCONSISTENCY = "data_inconsistency"
    INVALID_FORMAT = "invalid_format"
    EXPIRED_DOCUMENT = "expired_document"
    FUTURE_DATE = "future_date"
    IMPOSSIBLE_DATE = "impossible_date"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    STATE_CODE_MISMATCH = "state_code_mismatch"
    GENDER_MISMATCH = "gender_mismatch"
    AGE_INCONSISTENCY = "age_inconsistency"
    NAME_FORMAT_SUSPICIOUS = "name_format_suspicious"
    TOO_MANY_ILLEGIBLE = "too_many_illegible"
    CROSS_VALIDATION_FAILED = "cross_validation_failed"


class FraudIndicator(BaseModel):
    """A single fact observed about a document. Never aggregated in place."""

    model_config = _VALUE_CONFIG

    kind: FraudIndicatorKind
    severity: Severity
    field: Optional[str] = None
    message: str
    detail: Optional[str] = None


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FraudReport(BaseModel):
    """Risk assessment derived entirely from the indicators it carries."""

    model_config = _VALUE_CONFIG

    is_authentic: bool
    risk_level: RiskLevel
    risk_score: int = Field(ge=0, le=100)
    indicators: tuple[FraudIndicator, ...] = ()
    recommendations: tuple[str, ...] = ()


# ─── Post-Processing ─────────────────────────────────────────────────


class PostProcessResult(BaseModel):
    """Corrected field map plus the audit trail of what was changed."""

    model_config = _VALUE_CONFIG

    corrected_data: dict[str, str] = Field(default_factory=dict)
    corrections: tuple[str, ...] = ()
    overall_confidence: float = Field(ge=0.0, le=1.0)
    illegible_fields: tuple[str, ...] = ()
    field_confidences: dict[str, float] = Field(default_factory=dict)


# ─── Document Analysis ───────────────────────────────────────────────


class ExtractionResult(BaseModel):
    """What the upstream OCR/AI stage hands us for one document.

    Producing this is out of scope here; we only consume it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_valid: bool = True
    detected_type: str = ""
    reason: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    extracted_data: dict[str, Optional[str | int | float]] = Field(default_factory=dict)
    image_quality: Optional[str] = None
    matches_expected: bool = False
    ocr_warnings: list[str] = Field(default_factory=list)
    cross_validation_warnings: list[str] = Field(default_factory=list)


class DocumentAnalysis(BaseModel):
    """The final, merged result for one document."""

    model_config = _VALUE_CONFIG

    is_valid: bool
    detected_type: str
    reason: str
    confidence: float = Field(ge=0.0, le=1.0)
    extracted_data: dict[str, str] = Field(default_factory=dict)
    illegible_fields: tuple[str, ...] = ()
    ocr_corrections: tuple[str, ...] = ()
    cross_validation_warnings: tuple[str, ...] = ()
    image_quality: Optional[str] = None
    matches_expected: bool = False
    fraud_analysis: FraudReport
