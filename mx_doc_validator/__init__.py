"""
MX Document Validator — OCR-aware correction and fraud scoring for Mexican documents.

Architecture: OCR Normalizer → Field Validators → Post-Processor → Fraud Analyzer
Philosophy:  Repair what OCR broke. Never repair what OCR could not read.
"""

__version__ = "1.0.0"
