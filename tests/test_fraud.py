"""
Tests for the fraud analyzer.

Every rule is exercised in isolation against a clean baseline document, then
in combination to confirm scores add up and nothing suppresses anything else.
The `today` fixture pins the reference date to 2025-06-15.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from mx_doc_validator.fraud import (
    analyze,
    birth_date_from_curp,
    declared_gender,
    gender_from_curp,
    parse_document_date,
    parse_expiry_date,
    quick_fraud_check,
    risk_level_for,
    state_from_curp,
    suspicious_name_reason,
)
from mx_doc_validator.models import FraudIndicatorKind, RiskLevel, Severity


CLEAN_CURP = "PEGJ850101HDFRRL04"  # Born 1985-01-01, male, Ciudad de México


def _clean_data(**overrides: Any) -> dict[str, str]:
    """Factory for a consistent, unremarkable INE extraction."""
    data = {
        "nombre": "Juan Garcia Lopez",
        "curp": CLEAN_CURP,
        "rfc": "PEGJ850101AB1",
        "sexo": "H",
        "fechaNacimiento": "1985-01-01",
        "vigencia": "2030",
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


def _kinds(report) -> list[FraudIndicatorKind]:
    return [i.kind for i in report.indicators]


# ═══════════════════════════════════════════════════════════════════════
# BASELINE & SCORING
# ═══════════════════════════════════════════════════════════════════════


class TestBaseline:
    def test_clean_document_is_low_risk(self, today: date):
        report = analyze(_clean_data(), "INE", today=today)
        assert report.risk_score == 0
        assert report.risk_level == RiskLevel.LOW
        assert report.is_authentic is True
        assert report.indicators == ()
        assert report.recommendations == ()

    def test_deterministic(self, today: date):
        data = _clean_data(curp="PEGJ850101HXXRRL03", sexo="M")
        assert analyze(data, "INE", today=today) == analyze(data, "INE", today=today)

    def test_state_and_gender_scores_add_up(self, today: date):
        report = analyze(
            _clean_data(curp="PEGJ850101HXXRRL03", sexo="M", rfc=None), "INE", today=today
        )
        assert report.risk_score >= 55
        assert report.risk_score == 55
        assert report.risk_level == RiskLevel.HIGH
        assert report.is_authentic is False
        assert _kinds(report) == [
            FraudIndicatorKind.STATE_CODE_MISMATCH,
            FraudIndicatorKind.GENDER_MISMATCH,
        ]
        assert report.recommendations == (
            "Consider requesting a clearer image or scan",
            "Cross-reference with additional ID",
        )

    def test_score_clamped_to_100(self, today: date):
        report = analyze(
            _clean_data(
                curp="TEST291231HXXRRL01",
                sexo="M",
                nombre="TEST",
                fechaNacimiento="1990-01-01",
                vigencia="2010",
            ),
            "INE",
            ["a", "b", "c", "d"],
            "ilegible",
            today=today,
        )
        assert report.risk_score == 100
        assert report.risk_level == RiskLevel.CRITICAL
        assert report.recommendations[:2] == (
            "Document should be manually reviewed before acceptance",
            "Request additional supporting documentation",
        )

    @pytest.mark.parametrize(
        "score,level",
        [
            (0, RiskLevel.LOW),
            (19, RiskLevel.LOW),
            (20, RiskLevel.MEDIUM),
            (44, RiskLevel.MEDIUM),
            (45, RiskLevel.HIGH),
            (69, RiskLevel.HIGH),
            (70, RiskLevel.CRITICAL),
            (100, RiskLevel.CRITICAL),
        ],
    )
    def test_risk_bands(self, score: int, level: RiskLevel):
        assert risk_level_for(score) == level


# ═══════════════════════════════════════════════════════════════════════
# IMAGE QUALITY & ILLEGIBILITY
# ═══════════════════════════════════════════════════════════════════════


class TestLegibility:
    @pytest.mark.parametrize("quality", ["mala", "ilegible"])
    def test_poor_image_quality(self, quality: str, today: date):
        report = analyze(_clean_data(), "INE", image_quality=quality, today=today)
        assert report.risk_score == 15
        assert report.indicators[0].severity == Severity.WARNING

    def test_regular_quality_ok(self, today: date):
        assert analyze(_clean_data(), "INE", image_quality="regular", today=today).risk_score == 0

    def test_three_illegible_fields(self, today: date):
        report = analyze(_clean_data(), "INE", ["curp", "rfc", "vin"], today=today)
        assert report.risk_score == 30
        assert report.risk_level == RiskLevel.MEDIUM
        assert "Request a clearer capture of the document" in report.recommendations

    def test_two_illegible_fields_ok(self, today: date):
        assert analyze(_clean_data(), "INE", ["curp", "rfc"], today=today).risk_score == 0

    def test_illegible_curp_skips_curp_rules(self, today: date):
        report = analyze(_clean_data(curp="PEGJ85*101HXXRRL03", sexo="M"), "INE", today=today)
        assert report.indicators == ()


# ═══════════════════════════════════════════════════════════════════════
# CURP-DERIVED RULES
# ═══════════════════════════════════════════════════════════════════════


class TestCurpRules:
    def test_invalid_state_code(self, today: date):
        report = analyze(_clean_data(curp="PEGJ850101HXXRRL03", rfc=None), "INE", today=today)
        assert report.risk_score == 30
        indicator = report.indicators[0]
        assert indicator.kind == FraudIndicatorKind.STATE_CODE_MISMATCH
        assert indicator.severity == Severity.ERROR
        assert indicator.field == "curp"

    @pytest.mark.parametrize("sexo", ["M", "Mujer", "FEMENINO"])
    def test_gender_mismatch(self, sexo: str, today: date):
        report = analyze(_clean_data(sexo=sexo), "INE", today=today)
        assert _kinds(report) == [FraudIndicatorKind.GENDER_MISMATCH]
        assert report.risk_score == 25
        assert "CURP indicates Male" in report.indicators[0].detail

    @pytest.mark.parametrize("sexo", ["H", "hombre", "Masculino", "X"])
    def test_gender_consistent_or_unknown(self, sexo: str, today: date):
        assert analyze(_clean_data(sexo=sexo), "INE", today=today).risk_score == 0

    def test_future_birth_date(self, today: date):
        report = analyze(
            _clean_data(curp="PEGJ291231HDFRRL01", rfc=None, fechaNacimiento=None),
            "INE",
            today=today,
        )
        assert report.risk_score == 50
        assert report.indicators[0].kind == FraudIndicatorKind.FUTURE_DATE
        assert report.indicators[0].severity == Severity.CRITICAL

    def test_impossible_age(self):
        report = analyze(
            _clean_data(
                curp="PEGJ310101HDFRRL01", rfc=None, fechaNacimiento=None, vigencia=None
            ),
            "INE",
            today=date(2070, 1, 1),
        )
        assert _kinds(report) == [FraudIndicatorKind.IMPOSSIBLE_DATE]
        assert report.risk_score == 50

    def test_underage_for_license(self, today: date):
        data = _clean_data(curp="PEGJ150101HDFRRL01", rfc=None, fechaNacimiento=None)
        report = analyze(data, "Licencia de Conducir", today=today)
        assert _kinds(report) == [FraudIndicatorKind.AGE_INCONSISTENCY]
        assert report.risk_score == 30

    def test_underage_fine_for_other_documents(self, today: date):
        data = _clean_data(curp="PEGJ150101HDFRRL01", rfc=None, fechaNacimiento=None)
        assert analyze(data, "Pasaporte", today=today).risk_score == 0

    def test_future_birth_on_license_also_underage(self, today: date):
        report = analyze({"curp": "PEGJ291231HDFRRL01"}, "Licencia de Conducir", today=today)
        assert _kinds(report) == [
            FraudIndicatorKind.FUTURE_DATE,
            FraudIndicatorKind.AGE_INCONSISTENCY,
        ]
        assert report.risk_score == 80
        assert report.risk_level == RiskLevel.CRITICAL

    def test_birth_date_cross_check_fails(self, today: date):
        report = analyze(_clean_data(fechaNacimiento="1985-01-05"), "INE", today=today)
        assert _kinds(report) == [FraudIndicatorKind.DATA_INCONSISTENCY]
        assert report.indicators[0].field == "fechaNacimiento"
        assert report.risk_score == 35

    def test_birth_date_one_day_apart_ok(self, today: date):
        assert analyze(_clean_data(fechaNacimiento="02/01/1985"), "INE", today=today).risk_score == 0

    def test_unparseable_birth_date_skipped(self, today: date):
        assert analyze(_clean_data(fechaNacimiento="enero 1985"), "INE", today=today).risk_score == 0


class TestRfcCurp:
    def test_mismatch(self, today: date):
        report = analyze(_clean_data(rfc="PEGX850101AB1"), "INE", today=today)
        assert _kinds(report) == [FraudIndicatorKind.CROSS_VALIDATION_FAILED]
        assert report.risk_score == 40
        assert report.indicators[0].detail == "RFC base: PEGX850101, CURP base: PEGJ850101"

    def test_company_rfc_not_compared(self, today: date):
        assert analyze(_clean_data(rfc="ABC850101XY1"), "INE", today=today).risk_score == 0

    def test_registry_recommendation_listed_once(self, today: date):
        report = analyze(
            _clean_data(rfc="PEGX850101AB1", fechaNacimiento="1990-01-01"), "INE", today=today
        )
        registry = [r for r in report.recommendations if "RENAPO" in r]
        assert len(registry) == 1


# ═══════════════════════════════════════════════════════════════════════
# EXPIRY
# ═══════════════════════════════════════════════════════════════════════


class TestExpiry:
    def test_expired_year(self, today: date):
        report = analyze(_clean_data(vigencia="2020"), "INE", today=today)
        assert _kinds(report) == [FraudIndicatorKind.EXPIRED_DOCUMENT]
        assert report.risk_score == 20
        assert "Request updated, non-expired document" in report.recommendations

    def test_expired_full_date(self, today: date):
        report = analyze(_clean_data(vigencia="14/06/2025"), "INE", today=today)
        assert report.risk_score == 20

    def test_range_uses_last_year(self, today: date):
        assert analyze(_clean_data(vigencia="2020-2030"), "INE", today=today).risk_score == 0

    def test_vigencia_fin_takes_precedence(self, today: date):
        data = _clean_data(vigencia="2020", vigenciaFin="2030-01-01")
        assert analyze(data, "INE", today=today).risk_score == 0

    def test_distant_expiry(self, today: date):
        report = analyze(_clean_data(vigencia="2050-01-01"), "INE", today=today)
        assert _kinds(report) == [FraudIndicatorKind.FUTURE_DATE]
        assert report.indicators[0].severity == Severity.ERROR
        assert report.risk_score == 25

    def test_twenty_years_ahead_ok(self, today: date):
        assert analyze(_clean_data(vigencia="2045"), "INE", today=today).risk_score == 0

    def test_distant_expiry_compares_years(self, today: date):
        assert analyze(_clean_data(vigencia="2045-12-31"), "INE", today=today).risk_score == 0
        assert analyze(_clean_data(vigencia="2046-01-01"), "INE", today=today).risk_score == 25


# ═══════════════════════════════════════════════════════════════════════
# NAMES
# ═══════════════════════════════════════════════════════════════════════


class TestName:
    @pytest.mark.parametrize("name", ["TEST USUARIO", "Prueba Uno", "Juan Perez", "FULANO DE TAL"])
    def test_placeholder_names(self, name: str, today: date):
        report = analyze(_clean_data(nombre=name), "INE", today=today)
        assert _kinds(report) == [FraudIndicatorKind.NAME_FORMAT_SUSPICIOUS]
        assert report.risk_score == 20

    def test_reasons(self):
        assert suspicious_name_reason("ZZZZZ") == "Repeated characters detected"
        assert suspicious_name_reason("Ana") == "Name is unusually short"
        assert suspicious_name_reason("Ana Maria Lopez") is None

    def test_illegible_name_skipped(self, today: date):
        assert analyze(_clean_data(nombre="TE**"), "INE", today=today).risk_score == 0


# ═══════════════════════════════════════════════════════════════════════
# VEHICLE DOCUMENTS
# ═══════════════════════════════════════════════════════════════════════


class TestVehicle:
    def test_short_vin(self, today: date):
        report = analyze({"vin": "1HGCM826"}, "Tarjeta de Circulación", today=today)
        assert report.risk_score == 25
        assert report.indicators[0].severity == Severity.ERROR
        assert "Inspect the VIN physically on the vehicle" in report.recommendations

    def test_forbidden_letters(self, today: date):
        report = analyze({"vin": "1HGCM82633AI04352"}, "Póliza de Seguro", today=today)
        assert report.risk_score == 15
        assert report.indicators[0].severity == Severity.WARNING

    def test_both_vin_rules_fire(self, today: date):
        report = analyze({"vin": "1HGCM8I"}, "vehiculo", today=today)
        assert report.risk_score == 40
        assert len(report.indicators) == 2

    def test_vin_ignored_for_non_vehicle_documents(self, today: date):
        assert analyze({"vin": "1HGCM8I"}, "INE", today=today).risk_score == 0

    @pytest.mark.parametrize("anio", ["1899", "2027"])
    def test_impossible_year(self, anio: str, today: date):
        report = analyze({"anio": anio}, "circulacion", today=today)
        assert _kinds(report) == [FraudIndicatorKind.IMPOSSIBLE_DATE]
        assert report.risk_score == 30

    @pytest.mark.parametrize("anio", ["1900", "2026", "2019 modelo", "sin dato"])
    def test_plausible_or_unreadable_year(self, anio: str, today: date):
        assert analyze({"anio": anio}, "circulacion", today=today).risk_score == 0


# ═══════════════════════════════════════════════════════════════════════
# DERIVATION HELPERS
# ═══════════════════════════════════════════════════════════════════════


class TestHelpers:
    def test_birth_date_1900s(self):
        assert birth_date_from_curp(CLEAN_CURP) == date(1985, 1, 1)

    def test_birth_date_century_cutoff(self):
        assert birth_date_from_curp("PEGJ300101HDFRRL01") == date(2030, 1, 1)
        assert birth_date_from_curp("PEGJ310101HDFRRL01") == date(1931, 1, 1)

    @pytest.mark.parametrize("curp", ["PEGJ850231HDFRRL04", "PEGJ850431HDFRRL04", "PEGJ851301HDFRRL04"])
    def test_calendar_overflow_rejected(self, curp: str):
        assert birth_date_from_curp(curp) is None

    def test_non_digit_birth_date(self):
        assert birth_date_from_curp("PEGJ85O101HDFRRL04") is None

    def test_gender_and_state(self):
        assert gender_from_curp(CLEAN_CURP) == "H"
        assert gender_from_curp("PEGJ850101XDFRRL04") is None
        assert state_from_curp(CLEAN_CURP) == "DF"
        assert state_from_curp("PEGJ") is None

    @pytest.mark.parametrize(
        "sexo,expected",
        [("H", "H"), ("m", "M"), ("Masculino", "H"), ("Femenino", "M"), ("X", None)],
    )
    def test_declared_gender(self, sexo: str, expected):
        assert declared_gender(sexo) == expected

    def test_parse_document_date_formats(self):
        assert parse_document_date("1985-01-31") == date(1985, 1, 31)
        assert parse_document_date("1985/01/31") == date(1985, 1, 31)
        assert parse_document_date("31/01/1985") == date(1985, 1, 31)
        assert parse_document_date("31-01-1985") == date(1985, 1, 31)
        assert parse_document_date("30/02/1985") is None
        assert parse_document_date("") is None

    def test_parse_expiry_bare_year(self):
        assert parse_expiry_date("VIGENCIA 2031") == date(2031, 12, 31)
        assert parse_expiry_date("sin fecha") is None


class TestQuickCheck:
    def test_clean(self):
        assert quick_fraud_check(_clean_data()) is True

    def test_test_name(self):
        assert quick_fraud_check({"nombre": "prueba"}) is False

    def test_bad_gender(self):
        assert quick_fraud_check({"curp": "PEGJ850101XDFRRL04"}) is False

    def test_bad_state(self):
        assert quick_fraud_check({"curp": "PEGJ850101HXXRRL03"}) is False

    def test_illegible_curp_not_judged(self):
        assert quick_fraud_check({"curp": "PEGJ850101XXXRRL*3"}) is True
