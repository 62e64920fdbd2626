#!/usr/bin/env python3
"""
MX Document Validator — Entry Point
===================================

Demonstrates the full analysis pipeline on a sample extraction with typical
OCR damage: O read for 0, a wrong CURP verification digit, a spaced-out CLABE
and an illegible field.

Usage:
    python main.py
    MX_DOC_VALIDATOR_LOG_LEVEL=DEBUG python main.py    # show every correction
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from mx_doc_validator.models import ExtractionResult, Severity
from mx_doc_validator.pipeline import DocumentAnalysisPipeline

load_dotenv()


# ─── Sample Extraction — Ugly on Purpose ────────────────────────────

SAMPLE_EXTRACTION = ExtractionResult(
    is_valid=True,
    detected_type="INE/IFE",
    reason="Credencial de elector legible",
    confidence=0.85,
    image_quality="regular",
    extracted_data={
        "nombre": "  juan   GARCIA  lopez ",
        "curp": "PEGJ85O1O1HDFRRL09",
        "rfc": "PEGJ85O1O1AB1",
        "clabe": "0121 8000 1234 5678 9",
        "sexo": "H",
        "fechaNacimiento": "01/01/1985",
        "vigencia": "2020-2030",
        "claveElector": "***",
        "folio": "N/A",
    },
)


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_SEVERITY_COLORS = {
    Severity.CRITICAL: _RED,
    Severity.ERROR: _RED,
    Severity.WARNING: _YELLOW,
    Severity.INFO: _CYAN,
}


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(analysis) -> int:
    """Pretty-print the document analysis with ANSI color codes.

    Returns:
        0 if the document passed, 1 if rejected or flagged.
    """
    fraud = analysis.fraud_analysis

    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  DOCUMENT ANALYSIS REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Type:        {analysis.detected_type}")
    print(f"  Quality:     {analysis.image_quality}")
    print(f"  Confidence:  {analysis.confidence:.1%}")
    print(f"  Reason:      {_DIM}{analysis.reason}{_RESET}")
    print(f"{'─' * _WIDTH}")

    for key, value in analysis.extracted_data.items():
        print(f"  {key:<16} {value}")

    if analysis.ocr_corrections:
        print(f"\n  {_CYAN}{_BOLD}OCR CORRECTIONS ({len(analysis.ocr_corrections)}){_RESET}")
        for line in analysis.ocr_corrections:
            print(f"    {line}")

    if analysis.illegible_fields:
        print(f"\n  {_YELLOW}ILLEGIBLE: {', '.join(analysis.illegible_fields)}{_RESET}")

    print(f"{'─' * _WIDTH}")
    print(f"  Risk:        {_BOLD}{fraud.risk_level.value.upper()}{_RESET} ({fraud.risk_score}/100)")
    for indicator in fraud.indicators:
        color = _SEVERITY_COLORS[indicator.severity]
        print(f"    {color}[{indicator.severity.value.upper()}] {indicator.kind.value}{_RESET}")
        print(f"    {indicator.message}")
        if indicator.detail:
            print(f"      {_DIM}{indicator.detail}{_RESET}")
    for rec in fraud.recommendations:
        print(f"  → {rec}")

    passed = analysis.is_valid and fraud.is_authentic
    print(f"{'=' * _WIDTH}")
    if passed:
        print(f"  {_GREEN}{_BOLD}DOCUMENT ACCEPTED{_RESET}")
    else:
        print(f"  {_RED}{_BOLD}DOCUMENT FLAGGED  --  manual review required{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 0 if passed else 1


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run the analysis pipeline on the sample extraction and print the report."""
    logging.basicConfig(
        level=os.getenv("MX_DOC_VALIDATOR_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    pipeline = DocumentAnalysisPipeline()
    analysis = pipeline.run(SAMPLE_EXTRACTION, expected_type="ine")
    sys.exit(print_report(analysis))


if __name__ == "__main__":
    main()
