"""Pure domain layer: partner references, periods, recurrence, DTOs, clock."""

from debt_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from debt_kernel.domain.dtos import (
    DebtListFilters,
    DefectSeverity,
    DefectType,
    FullSyncResult,
    IntegrityDefect,
    IntegrityReport,
    NoticeKind,
    NoticeResult,
    PeriodResult,
    SyncMode,
    TransactionKind,
)
from debt_kernel.domain.partner import (
    CustomerRef,
    PartnerRef,
    PartnerRole,
    SupplierRef,
    partner_ref_for,
    partner_ref_from_ids,
    partner_ref_from_key,
)
from debt_kernel.domain.period import DateRange, period_label, resolve_year, validate_year
from debt_kernel.domain.recurrence import (
    DebtStatus,
    OpeningMethod,
    PeriodMovements,
    compute_closing,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "CustomerRef",
    "SupplierRef",
    "PartnerRef",
    "PartnerRole",
    "partner_ref_for",
    "partner_ref_from_ids",
    "partner_ref_from_key",
    "DateRange",
    "period_label",
    "resolve_year",
    "validate_year",
    "DebtStatus",
    "OpeningMethod",
    "PeriodMovements",
    "compute_closing",
    "TransactionKind",
    "SyncMode",
    "PeriodResult",
    "FullSyncResult",
    "DefectType",
    "DefectSeverity",
    "IntegrityDefect",
    "IntegrityReport",
    "NoticeKind",
    "NoticeResult",
    "DebtListFilters",
]
