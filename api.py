"""
MX Document Validator — FastAPI Server
======================================

RESTful API over the correction and fraud-scoring core.

Endpoints:
    POST /validate-field     Validate and auto-correct a single field
    POST /post-process       Correct every field of an extracted field map
    POST /fraud-analysis     Score a corrected field map for fraud
    POST /analyze            Full document analysis (post-process + fraud)
    POST /normalize-text     Clean a raw OCR page before field extraction
    GET  /supported-types    Document types and field catalog
    GET  /health             Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
    http://localhost:8000/redoc            # ReDoc (alternative)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mx_doc_validator import __version__
from mx_doc_validator.catalog import EXTRACTABLE_FIELDS, SUPPORTED_DOCUMENT_TYPES
from mx_doc_validator.exceptions import UnsupportedFieldError
from mx_doc_validator.fraud import analyze
from mx_doc_validator.models import (
    DocumentAnalysis,
    ExtractionResult,
    FraudReport,
    PostProcessResult,
)
from mx_doc_validator.ocr_normalizer import normalize_ocr_text
from mx_doc_validator.pipeline import DocumentAnalysisPipeline
from mx_doc_validator.postprocess import post_process
from mx_doc_validator.validators import VALIDATABLE_FIELDS, validate_field

load_dotenv()


# ─── Application Lifespan (pre-warm pipeline) ───────────────────────

_pipeline: DocumentAnalysisPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared pipeline on startup."""
    global _pipeline  # noqa: PLW0603
    _pipeline = DocumentAnalysisPipeline()
    yield
    _pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="MX Document Validator API",
    description=(
        "OCR-aware correction, checksum validation and fraud scoring for "
        "fields extracted from Mexican identity, fiscal, banking and vehicle "
        "documents (CURP, RFC, CLABE, VIN, NSS, placas)."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidateFieldRequest(BaseModel):
    """Request body for the /validate-field endpoint."""

    model_config = _CAMEL

    field: str = Field(..., description="One of: " + ", ".join(VALIDATABLE_FIELDS))
    value: str = Field(
        ...,
        min_length=1,
        description="The raw extracted value.",
        json_schema_extra={"example": "PEGJ85O1O1HDFRRL09"},
    )


class ValidateFieldResponse(BaseModel):
    """Single-field result, echoing the value that was submitted."""

    field: str
    original_value: str
    valid: bool
    corrected: str
    confidence: float
    corrections: list[str] = Field(default_factory=list)

    model_config = {**_CAMEL, "json_schema_extra": {"example": {
        "field": "curp",
        "originalValue": "PEGJ85O1O1HDFRRL09",
        "valid": True,
        "corrected": "PEGJ850101HDFRRL04",
        "confidence": 0.91,
        "corrections": [
            "Position 6: O → 0",
            "Position 8: O → 0",
            "Verification digit: 9 → 4",
        ],
    }}}


class PostProcessRequest(BaseModel):
    model_config = _CAMEL

    data: dict[str, Optional[str]] = Field(default_factory=dict)


class FraudAnalysisRequest(BaseModel):
    model_config = _CAMEL

    data: dict[str, str] = Field(default_factory=dict)
    document_type: str = ""
    illegible_fields: list[str] = Field(default_factory=list)
    image_quality: Optional[str] = None


class AnalyzeRequest(BaseModel):
    model_config = _CAMEL

    extraction: ExtractionResult
    expected_type: str = "auto"


class NormalizeTextRequest(BaseModel):
    """Raw page text as returned by an OCR engine."""

    text: str = Field(
        ...,
        description="Full OCR page text, unprocessed.",
        json_schema_extra={"example": "CURP:  PEGJ850101HDFRRL04\n|NSTITUTO  NACIONAL"},
    )


class NormalizeTextResponse(BaseModel):
    text: str


class DocumentTypeOut(BaseModel):
    id: str
    name: str
    description: str


class SupportedTypesResponse(BaseModel):
    model_config = _CAMEL

    document_types: list[DocumentTypeOut]
    extractable_fields: list[str]
    validatable_fields: list[str]


class HealthResponse(BaseModel):
    model_config = _CAMEL

    status: str
    version: str
    validatable_fields: list[str]


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> DocumentAnalysisPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/validate-field",
    summary="Validate and auto-correct a single field",
    tags=["Validation"],
    responses={400: {"description": "Field type has no validator"}},
)
def validate_single_field(request: ValidateFieldRequest) -> ValidateFieldResponse:
    """Validate one CURP, RFC, CLABE, VIN, NSS or license plate value.

    Returns the corrected value, a **confidence** in [0, 1] and the list of
    **corrections** applied. Invalid values are reported, never rejected.
    """
    try:
        outcome = validate_field(request.field, request.value)
    except UnsupportedFieldError as exc:
        raise HTTPException(
            status_code=400,
            detail={
                "code": exc.code,
                "message": str(exc),
                "validFields": list(VALIDATABLE_FIELDS),
            },
        ) from exc

    return ValidateFieldResponse(
        field=request.field,
        original_value=request.value,
        valid=outcome.valid,
        corrected=outcome.corrected,
        confidence=outcome.confidence,
        corrections=list(outcome.corrections),
    )


@app.post(
    "/post-process",
    summary="Correct every field of an extracted field map",
    tags=["Validation"],
)
def post_process_fields(request: PostProcessRequest) -> PostProcessResult:
    """Run the matching validator on every recognized field.

    Values marked with `*` / `***` are returned untouched and listed in
    **illegibleFields**.
    """
    return post_process(request.data)


@app.post(
    "/fraud-analysis",
    summary="Score a corrected field map for fraud",
    tags=["Fraud"],
)
def fraud_analysis(request: FraudAnalysisRequest) -> FraudReport:
    """Cross-validate fields against each other and against real-world limits."""
    return analyze(
        request.data,
        request.document_type,
        request.illegible_fields,
        request.image_quality,
    )


@app.post(
    "/analyze",
    summary="Full document analysis",
    tags=["Fraud"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def analyze_document(request: AnalyzeRequest) -> DocumentAnalysis:
    """Post-process an extraction and attach its fraud report.

    Returns the corrected **extractedData**, **ocrCorrections**,
    **illegibleFields** and **fraudAnalysis** in one document result.
    """
    pipeline = _get_pipeline()
    return pipeline.run(request.extraction, request.expected_type)


@app.post(
    "/normalize-text",
    summary="Clean a raw OCR page",
    tags=["Validation"],
)
def normalize_text(request: NormalizeTextRequest) -> NormalizeTextResponse:
    """Collapse whitespace, repair `|`/`!` read for a capital I, straighten
    typographic quotes and drop control characters.

    Meant to run on the OCR output before it is handed to the field extractor.
    """
    return NormalizeTextResponse(text=normalize_ocr_text(request.text))


@app.get(
    "/supported-types",
    summary="Supported document types and fields",
    tags=["System"],
)
def supported_types() -> SupportedTypesResponse:
    return SupportedTypesResponse(
        document_types=[
            DocumentTypeOut(id=t.id, name=t.name, description=t.description)
            for t in SUPPORTED_DOCUMENT_TYPES
        ],
        extractable_fields=list(EXTRACTABLE_FIELDS),
        validatable_fields=list(VALIDATABLE_FIELDS),
    )


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and configuration info."""
    _get_pipeline()
    return HealthResponse(
        status="healthy",
        version=__version__,
        validatable_fields=list(VALIDATABLE_FIELDS),
    )
