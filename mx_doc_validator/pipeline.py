"""
Document analysis pipeline — merges correction and fraud scoring per document.

Flow:
  ┌────────────────────┐
  │ Extraction result  │   ← from the OCR/AI stage (out of scope)
  └─────────┬──────────┘
            │
     ┌──────▼──────┐
     │    Clean    │   ← drop N/A placeholders
     └──────┬──────┘
            │
     ┌──────▼──────┐
     │ Post-process│   ← per-field validators, illegible pass-through
     └──────┬──────┘
            │
     ┌──────▼──────┐
     │   Fraud     │   ← quick pre-screen, then additive cross-field rules
     └──────┬──────┘
            │
     ┌──────▼──────┐
     │  Analysis   │   ← merged verdict + audit trail
     └─────────────┘

Design principles:
  - Every stage is a pure function of its input; the pipeline holds no
    per-document state, so one instance can serve many threads.
  - The fraud analyzer sees only the corrected map, never the raw one.
  - A document the extractor could barely read is rejected outright.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from .fraud import ILLEGIBLE_FIELD_LIMIT, analyze, quick_fraud_check
from .models import DocumentAnalysis, ExtractionResult
from .postprocess import clean_extracted_data, post_process

logger = logging.getLogger(__name__)

# Weight of the extractor's own confidence in the combined score
EXTRACTOR_CONFIDENCE_WEIGHT = 0.6
VALIDATOR_CONFIDENCE_WEIGHT = 0.4

PRESCREEN_WARNING = "Pre-filtro: nombre de prueba o CURP con sexo/estado inválido"


class DocumentAnalysisPipeline:
    """Orchestrates correction and fraud scoring for one extracted document.

    Usage:
        pipeline = DocumentAnalysisPipeline()
        analysis = pipeline.run(extraction, expected_type="ine")
        if not analysis.fraud_analysis.is_authentic:
            # send to manual review
            ...
    """

    def run(
        self,
        extraction: ExtractionResult,
        expected_type: str = "auto",
        *,
        today: Optional[date] = None,
    ) -> DocumentAnalysis:
        """Correct, score and merge one extraction.

        Args:
            extraction: The upstream extractor's output.
            expected_type: Document type the caller asked for ("auto" = any).
            today: Reference date for the fraud rules.

        Returns:
            DocumentAnalysis with corrected fields and the fraud report.
        """
        # ── Step 1: Clean + correct ─────────────────────────────────
        raw_data = clean_extracted_data(extraction.extracted_data)
        processed = post_process(raw_data)

        # ── Step 2: Pre-screen + fraud scoring ──────────────────────
        prescreen_passed = quick_fraud_check(processed.corrected_data)
        if not prescreen_passed:
            logger.warning("Pre-screen flagged document: placeholder name or bogus CURP")

        document_type = extraction.detected_type or (
            "" if expected_type == "auto" else expected_type
        )
        fraud = analyze(
            processed.corrected_data,
            document_type,
            processed.illegible_fields,
            extraction.image_quality,
            today=today,
        )

        # ── Step 3: Merge verdict ───────────────────────────────────
        illegible = processed.illegible_fields
        should_reject = (
            len(illegible) >= ILLEGIBLE_FIELD_LIMIT
            or extraction.image_quality == "ilegible"
        )

        reason = extraction.reason or "Documento procesado"
        if processed.corrections:
            reason += f" {len(processed.corrections)} correcciones OCR aplicadas."
        if should_reject:
            reason = (
                "Documento rechazado: imagen de baja calidad o demasiados "
                f"campos ilegibles. {reason}"
            )

        combined = (
            extraction.confidence * EXTRACTOR_CONFIDENCE_WEIGHT
            + processed.overall_confidence * VALIDATOR_CONFIDENCE_WEIGHT
        )

        warnings = [
            *extraction.cross_validation_warnings,
            *(f"OCR: {w}" for w in extraction.ocr_warnings),
            *(f"Campo ilegible: {f}" for f in illegible),
        ]
        if not prescreen_passed:
            warnings.append(PRESCREEN_WARNING)

        is_valid = extraction.is_valid and not should_reject
        logger.info(
            "Analysis complete: %s - %s (quality: %s, illegible: %d, risk: %s)",
            "VALID" if is_valid else "INVALID",
            extraction.detected_type or "Desconocido",
            extraction.image_quality,
            len(illegible),
            fraud.risk_level.value,
        )

        return DocumentAnalysis(
            is_valid=is_valid,
            detected_type=extraction.detected_type or "Desconocido",
            reason=reason,
            confidence=min(1.0, max(0.0, combined)),
            extracted_data=processed.corrected_data,
            illegible_fields=illegible,
            ocr_corrections=processed.corrections,
            cross_validation_warnings=tuple(warnings),
            image_quality=extraction.image_quality,
            matches_expected=extraction.matches_expected,
            fraud_analysis=fraud,
        )
