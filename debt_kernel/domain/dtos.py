"""
DTOs -- Immutable data structures returned by the debt ledger.

Responsibility:
    Results of syncs (PeriodResult, FullSyncResult), integrity audits
    (IntegrityDefect, IntegrityReport), debt notices (NoticeResult), and the
    filter object of the list view (DebtListFilters).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Services convert ORM
    rows into these DTOs at their boundary; nothing outside the kernel sees
    a DebtPeriod instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

from debt_kernel.domain.partner import PartnerRef, PartnerRole
from debt_kernel.domain.recurrence import DebtStatus, OpeningMethod


class TransactionKind(str, Enum):
    """Kinds of source events that move a partner balance."""

    INCREASE = "increase"      # sales / purchase orders
    DECREASE = "decrease"      # payment receipts / vouchers
    RETURN = "return"          # goods returned
    ADJUSTMENT = "adjustment"  # manual decrease-side correction


class SyncMode(str, Enum):
    FULL = "full"
    SNAPSHOT = "snapshot"


@dataclass(frozen=True)
class PeriodResult:
    """One persisted ledger period, as returned by a sync."""

    partner: PartnerRef
    period_name: str
    opening_balance: Decimal
    increasing_amount: Decimal
    decreasing_amount: Decimal
    return_amount: Decimal
    adjustment_amount: Decimal
    closing_balance: Decimal
    status: DebtStatus
    method: OpeningMethod
    notes: str | None = None
    is_locked: bool = False
    period_id: UUID | None = None

    @property
    def year(self) -> int:
        return int(self.period_name)


@dataclass(frozen=True)
class FullSyncResult:
    """
    Outcome of a full-history sync.

    ``periods`` holds every year walked, oldest first; the last one is the
    requested year.
    """

    partner: PartnerRef
    year: int
    first_year: int
    periods: tuple[PeriodResult, ...]

    def __post_init__(self) -> None:
        if not self.periods:
            raise ValueError("FullSyncResult requires at least one period")

    @property
    def final(self) -> PeriodResult:
        return self.periods[-1]

    @property
    def final_closing(self) -> Decimal:
        return self.final.closing_balance

    @property
    def years_synced(self) -> int:
        return len(self.periods)


# ---------------------------------------------------------------------------
# Integrity audit
# ---------------------------------------------------------------------------


class DefectType(str, Enum):
    INTERNAL_MATH_ERROR = "INTERNAL_MATH_ERROR"
    CROSS_PERIOD_ERROR = "CROSS_PERIOD_ERROR"
    MISSING_DATA = "MISSING_DATA"


class DefectSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


DEFECT_SEVERITY: Mapping[DefectType, DefectSeverity] = MappingProxyType({
    DefectType.INTERNAL_MATH_ERROR: DefectSeverity.CRITICAL,
    DefectType.CROSS_PERIOD_ERROR: DefectSeverity.HIGH,
    DefectType.MISSING_DATA: DefectSeverity.MEDIUM,
})


@dataclass(frozen=True)
class IntegrityDefect:
    defect_type: DefectType
    partner: PartnerRef
    partner_name: str
    reason: str
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def severity(self) -> DefectSeverity:
        return DEFECT_SEVERITY[self.defect_type]


@dataclass(frozen=True)
class IntegrityReport:
    year: int
    total_checked: int
    defects: tuple[IntegrityDefect, ...] = ()

    @property
    def defect_count(self) -> int:
        return len(self.defects)

    @property
    def is_clean(self) -> bool:
        return not self.defects

    def by_type(self, defect_type: DefectType) -> tuple[IntegrityDefect, ...]:
        return tuple(d for d in self.defects if d.defect_type == defect_type)


# ---------------------------------------------------------------------------
# Notices
# ---------------------------------------------------------------------------


class NoticeKind(str, Enum):
    PERIOD_REPORT = "PERIOD_REPORT"        # reconciliation notice for one year
    CURRENT_REMINDER = "CURRENT_REMINDER"  # live balance reminder


@dataclass(frozen=True)
class NoticeResult:
    success: bool
    sent_to: str
    kind: NoticeKind
    subject: str
    message: str
    cc: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DebtListFilters:
    """
    Filters of the debt list view.

    ``partner_type`` switches between the partner-first view (typed) and
    the period-first view (untyped).  ``limit`` None means the configured
    default page size.
    """

    partner_type: PartnerRole | None = None
    search: str | None = None
    assigned_user_id: UUID | None = None
    status: DebtStatus | None = None
    year: int | None = None
    province: str | None = None
    page: int = 1
    limit: int | None = None

    def canonical(self) -> dict[str, Any]:
        """Stable, JSON-ready form used for cache keys."""
        return {
            "assigned_user_id": str(self.assigned_user_id) if self.assigned_user_id else None,
            "limit": self.limit,
            "page": self.page,
            "province": self.province,
            "search": self.search,
            "status": self.status.value if self.status else None,
            "type": self.partner_type.value if self.partner_type else None,
            "year": self.year,
        }
