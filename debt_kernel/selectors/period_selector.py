"""
Module: debt_kernel.selectors.period_selector
Responsibility: Read-only access to persisted ledger periods.
Architecture position: Kernel > Selectors.  Reads models/period only.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from debt_kernel.db.types import to_decimal
from debt_kernel.domain.partner import PartnerRef, PartnerRole
from debt_kernel.domain.period import period_label
from debt_kernel.models.period import DebtPeriod
from debt_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerRow:
    """Snapshot of one DebtPeriod row."""

    period_id: UUID
    partner: PartnerRef
    partner_name: str
    period_name: str
    opening_balance: Decimal
    increasing_amount: Decimal
    decreasing_amount: Decimal
    return_amount: Decimal
    adjustment_amount: Decimal
    closing_balance: Decimal
    notes: str | None
    opening_method: str
    is_locked: bool
    locked_at: datetime | None
    updated_at: datetime | None

    @property
    def year(self) -> int:
        return int(self.period_name)

    @property
    def expected_closing(self) -> Decimal:
        return (
            self.opening_balance
            + self.increasing_amount
            - (self.decreasing_amount + self.return_amount + self.adjustment_amount)
        )

    @classmethod
    def from_model(cls, row: DebtPeriod) -> "LedgerRow":
        return cls(
            period_id=row.id,
            partner=row.partner_ref,
            partner_name=row.partner_name,
            period_name=row.period_name,
            opening_balance=to_decimal(row.opening_balance),
            increasing_amount=to_decimal(row.increasing_amount),
            decreasing_amount=to_decimal(row.decreasing_amount),
            return_amount=to_decimal(row.return_amount),
            adjustment_amount=to_decimal(row.adjustment_amount),
            closing_balance=to_decimal(row.closing_balance),
            notes=row.notes,
            opening_method=row.opening_method,
            is_locked=row.is_locked,
            locked_at=row.locked_at,
            updated_at=row.updated_at,
        )


def partner_filter(partner: PartnerRef):
    """WHERE clause selecting a partner's rows."""
    if partner.role is PartnerRole.CUSTOMER:
        return DebtPeriod.customer_id == partner.id
    return DebtPeriod.supplier_id == partner.id


class PeriodSelector(BaseSelector):
    """Queries over DebtPeriod rows."""

    def get(self, partner: PartnerRef, year: int) -> LedgerRow | None:
        row = self.session.scalars(
            select(DebtPeriod).where(
                partner_filter(partner),
                DebtPeriod.period_name == period_label(year),
            )
        ).first()
        return LedgerRow.from_model(row) if row is not None else None

    def closing_for(self, partner: PartnerRef, year: int) -> Decimal | None:
        row = self.get(partner, year)
        return row.closing_balance if row is not None else None

    def rows_for_year(self, year: int) -> list[LedgerRow]:
        """All rows of one year, customers before suppliers."""
        rows = self.session.scalars(
            select(DebtPeriod).where(DebtPeriod.period_name == period_label(year))
        ).unique()
        snapshots = [LedgerRow.from_model(row) for row in rows]
        snapshots.sort(key=lambda r: (r.partner.role is PartnerRole.SUPPLIER, str(r.partner.id)))
        return snapshots

    def by_partner_for_year(self, year: int) -> dict[str, LedgerRow]:
        """Rows of one year keyed by partner key (``C-<id>`` / ``S-<id>``)."""
        return {row.partner.key: row for row in self.rows_for_year(year)}

    def rows_for_partner(self, partner: PartnerRef) -> list[LedgerRow]:
        """Every row of one partner, oldest year first."""
        rows = self.session.scalars(
            select(DebtPeriod)
            .where(partner_filter(partner))
            .order_by(DebtPeriod.period_name)
        ).unique()
        return [LedgerRow.from_model(row) for row in rows]
