"""
Module: debt_kernel.models.period
Responsibility: ORM persistence for ledger periods -- one row per
    (partner, calendar year) holding the year's opening balance, movements
    and closing balance.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Exactly one of customer_id / supplier_id is set (ck_debt_period_one_partner).
    - At most one row per (customer, year) and per (supplier, year).
    - closing_balance == opening_balance + increasing_amount
        - (decreasing_amount + return_amount + adjustment_amount)
      within the configured tolerance.  Enforced by the writer
      (PeriodLedgerStore) and verified by the integrity auditor.
    - A locked row is never recomputed.

Lifecycle:
    Created on the first sync of (partner, year), updated in place by later
    syncs, never deleted.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from debt_kernel.db.base import TrackedBase, UUIDString
from debt_kernel.db.types import Money, PeriodLabel
from debt_kernel.domain.partner import CustomerRef, PartnerRef, SupplierRef
from debt_kernel.domain.recurrence import OpeningMethod, expected_closing
from debt_kernel.models.partner import Customer, Supplier


class DebtPeriod(TrackedBase):
    """
    A partner's ledger for one calendar year.

    Guarantees:
        - period_name is the 4-digit year ("2024").
        - start_time / end_time are Jan 1 00:00 and Dec 31 23:59:59.999999 UTC.
        - notes only ever grow (see domain.recurrence.append_note).
    """

    __tablename__ = "debt_periods"

    __table_args__ = (
        UniqueConstraint("customer_id", "period_name", name="uq_debt_period_customer"),
        UniqueConstraint("supplier_id", "period_name", name="uq_debt_period_supplier"),
        CheckConstraint(
            "(customer_id IS NULL) <> (supplier_id IS NULL)",
            name="ck_debt_period_one_partner",
        ),
        Index("idx_debt_period_name", "period_name"),
        Index("idx_debt_period_closing", "period_name", "closing_balance"),
    )

    customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=True,
    )
    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=True,
    )

    period_name: Mapped[PeriodLabel] = mapped_column(nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    opening_balance: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    increasing_amount: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    decreasing_amount: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    return_amount: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    adjustment_amount: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    closing_balance: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    opening_method: Mapped[str] = mapped_column(
        String(30),
        default=OpeningMethod.HISTORY_AGGREGATE.value,
        nullable=False,
    )

    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    customer: Mapped[Customer | None] = relationship(lazy="joined")
    supplier: Mapped[Supplier | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<DebtPeriod {self.partner_key} {self.period_name}: {self.closing_balance}>"

    @property
    def partner_ref(self) -> PartnerRef:
        if self.customer_id is not None:
            return CustomerRef(self.customer_id)
        return SupplierRef(self.supplier_id)

    @property
    def partner_key(self) -> str:
        return self.partner_ref.key

    @property
    def partner_name(self) -> str:
        partner = self.customer if self.customer_id is not None else self.supplier
        return partner.name if partner is not None else self.partner_key

    @property
    def year(self) -> int:
        return int(self.period_name)

    @property
    def expected_closing(self) -> Decimal:
        """Closing implied by this row's own components."""
        return expected_closing(
            self.opening_balance,
            self.increasing_amount,
            self.decreasing_amount,
            self.return_amount,
            self.adjustment_amount,
        )
