"""
IntegrityAuditor -- read-only consistency checks over one year of the ledger.

Responsibility:
    check_integrity(year) runs three checks and reports every finding as
    data:

    1. Internal arithmetic (CRITICAL): a row's stored closing differs from
       opening + increase - (decrease + returns + adjustments) by more than
       the tolerance.
    2. Cross-period continuity (HIGH): a row's opening differs from the
       same partner's closing of the previous year by more than the
       tolerance.  Only checked where the previous-year row exists.
    3. Missing period (MEDIUM): a partner active in the year (any increase
       or decrease event) has no row for it.

Architecture position:
    Services.  Opens its own session, reads only, and never commits.  No
    locks are taken; a defect found while a sync is in flight may reflect
    that race rather than corruption.

Failure modes:
    Data-quality issues never raise.  Data-store errors propagate.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from debt_config.schema import LedgerPolicy
from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.domain.dtos import DefectType, IntegrityDefect, IntegrityReport
from debt_kernel.domain.period import period_label, resolve_year
from debt_kernel.domain.recurrence import within_tolerance
from debt_kernel.logging_config import get_logger
from debt_kernel.selectors.period_selector import LedgerRow, PeriodSelector
from debt_kernel.selectors.transaction_selector import TransactionSelector
from debt_kernel.services.partner_directory import PartnerDirectory
from debt_services import observability

logger = get_logger("services.integrity_auditor")


class IntegrityAuditor:
    """Runs the ledger consistency checks for one year at a time."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()

    def check_integrity(self, year: int | str | None = None) -> IntegrityReport:
        target = resolve_year(year, self._clock)
        epsilon = self._policy.tolerance_epsilon

        with self._session_factory() as session:
            periods = PeriodSelector(session)
            current_rows = periods.rows_for_year(target)
            previous_by_key = periods.by_partner_for_year(target - 1)

            defects: list[IntegrityDefect] = []
            checked_keys: set[str] = set()

            for row in current_rows:
                checked_keys.add(row.partner.key)
                defects.extend(self._check_row(row, previous_by_key.get(row.partner.key), epsilon))

            directory = PartnerDirectory(session, self._clock)
            for partner in TransactionSelector(session).active_partners(target):
                if partner.key in checked_keys:
                    continue
                found = directory.get(partner)
                defects.append(IntegrityDefect(
                    defect_type=DefectType.MISSING_DATA,
                    partner=partner,
                    partner_name=found.name if found is not None else partner.key,
                    reason=f"Activity in {period_label(target)} but no ledger period",
                    details={"action": "run sync_full or sync_snap for this partner"},
                ))

        for defect in defects:
            observability.log_integrity_defect(
                defect_type=defect.defect_type.value,
                severity=defect.severity.value,
                partner_key=defect.partner.key,
                period_name=period_label(target),
            )

        report = IntegrityReport(
            year=target,
            total_checked=len(current_rows),
            defects=tuple(defects),
        )
        logger.info(
            "debt_integrity_checked",
            extra={
                "year": target,
                "total_checked": report.total_checked,
                "defect_count": report.defect_count,
            },
        )
        return report

    @staticmethod
    def _check_row(
        row: LedgerRow,
        previous: LedgerRow | None,
        epsilon: Decimal,
    ) -> list[IntegrityDefect]:
        defects = []

        expected = row.expected_closing
        if not within_tolerance(expected, row.closing_balance, epsilon):
            defects.append(IntegrityDefect(
                defect_type=DefectType.INTERNAL_MATH_ERROR,
                partner=row.partner,
                partner_name=row.partner_name,
                reason=f"Closing of {row.period_name} does not match its own components",
                details={
                    "period_name": row.period_name,
                    "expected_closing": str(expected),
                    "stored_closing": str(row.closing_balance),
                },
            ))

        if previous is not None and not within_tolerance(
            previous.closing_balance, row.opening_balance, epsilon,
        ):
            defects.append(IntegrityDefect(
                defect_type=DefectType.CROSS_PERIOD_ERROR,
                partner=row.partner,
                partner_name=row.partner_name,
                reason=f"Break between {previous.period_name} and {row.period_name}",
                details={
                    "previous_period": previous.period_name,
                    "previous_closing": str(previous.closing_balance),
                    "opening": str(row.opening_balance),
                },
            ))

        return defects
