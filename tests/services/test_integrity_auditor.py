"""
Tests for IntegrityAuditor.

Each defect kind is produced by writing ledger rows directly, bypassing
the sync path, so the auditor sees the corruption it is meant to catch.
"""

from datetime import datetime, timezone
from decimal import Decimal

from debt_config.schema import LedgerPolicy
from debt_kernel.domain.dtos import DefectSeverity, DefectType
from debt_services.integrity_auditor import IntegrityAuditor


def at(year, month=6, day=15):
    return datetime(year, month, day, 10, 0, tzinfo=timezone.utc)


class TestIntegrityAuditor:
    def test_clean_ledger_after_sync(self, seed, session_factory, sync_service, clock):
        c = seed.customer()
        seed.order(c, 1000, at(2023))
        seed.order(c, 500, at(2024))
        seed.payment(c, 200, at(2024))
        sync_service.sync_full(c, 2024)

        report = IntegrityAuditor(session_factory, clock=clock).check_integrity(2024)

        assert report.is_clean
        assert report.total_checked == 1
        assert report.year == 2024

    def test_internal_math_error(self, seed, session_factory, clock, captured_logs):
        c = seed.customer(name="Broken Maths Ltd")
        seed.period(c, 2024, opening=100, increase=50, closing=500)

        report = IntegrityAuditor(session_factory, clock=clock).check_integrity(2024)

        (defect,) = report.by_type(DefectType.INTERNAL_MATH_ERROR)
        assert defect.severity is DefectSeverity.CRITICAL
        assert defect.partner == c
        assert defect.partner_name == "Broken Maths Ltd"
        assert Decimal(defect.details["expected_closing"]) == Decimal("150")
        assert Decimal(defect.details["stored_closing"]) == Decimal("500")
        logged = [r for r in captured_logs() if r.get("observability_event") == "integrity_defect"]
        assert logged[0]["defect_type"] == "INTERNAL_MATH_ERROR"
        assert logged[0]["severity"] == "CRITICAL"

    def test_drift_within_tolerance_is_accepted(self, seed, session_factory, clock):
        c = seed.customer()
        seed.period(c, 2024, opening=100, increase=50, closing=160)

        report = IntegrityAuditor(session_factory, clock=clock).check_integrity(2024)

        assert report.is_clean

    def test_tolerance_is_configurable(self, seed, session_factory, clock):
        c = seed.customer()
        seed.period(c, 2024, opening=100, increase=50, closing=151)

        strict = IntegrityAuditor(
            session_factory, LedgerPolicy(tolerance_epsilon=Decimal("0.5")), clock=clock,
        )

        assert strict.check_integrity(2024).defect_count == 1

    def test_cross_period_error(self, seed, session_factory, clock):
        c = seed.customer()
        seed.period(c, 2023, opening=0, increase=1000)
        seed.period(c, 2024, opening=400, increase=100)

        report = IntegrityAuditor(session_factory, clock=clock).check_integrity(2024)

        (defect,) = report.defects
        assert defect.defect_type is DefectType.CROSS_PERIOD_ERROR
        assert defect.severity is DefectSeverity.HIGH
        assert defect.details["previous_period"] == "2023"
        assert Decimal(defect.details["previous_closing"]) == Decimal("1000")
        assert Decimal(defect.details["opening"]) == Decimal("400")

    def test_no_previous_row_skips_continuity(self, seed, session_factory, clock):
        c = seed.customer()
        seed.period(c, 2024, opening=400, increase=100)

        assert IntegrityAuditor(session_factory, clock=clock).check_integrity(2024).is_clean

    def test_missing_data(self, seed, session_factory, clock):
        synced, unsynced = seed.customer(), seed.supplier(name="Forgotten Supplier")
        seed.order(synced, 100, at(2024))
        seed.payment(unsynced, 100, at(2024))
        seed.period(synced, 2024, increase=100)

        report = IntegrityAuditor(session_factory, clock=clock).check_integrity(2024)

        (defect,) = report.defects
        assert defect.defect_type is DefectType.MISSING_DATA
        assert defect.severity is DefectSeverity.MEDIUM
        assert defect.partner == unsynced
        assert defect.partner_name == "Forgotten Supplier"
        assert "2024" in defect.reason
        assert report.total_checked == 1

    def test_all_defects_reported_together(self, seed, session_factory, clock):
        a, b, c = seed.customer(), seed.customer(), seed.customer()
        seed.period(a, 2024, opening=0, increase=100, closing=999)
        seed.period(b, 2023, increase=700)
        seed.period(b, 2024, opening=0)
        seed.order(c, 10, at(2024))

        report = IntegrityAuditor(session_factory, clock=clock).check_integrity("2024")

        assert {d.defect_type for d in report.defects} == set(DefectType)
        assert report.defect_count == 3

    def test_defaults_to_current_year(self, session_factory, clock):
        report = IntegrityAuditor(session_factory, clock=clock).check_integrity()
        assert report.year == clock.current_year()
        assert report.is_clean
