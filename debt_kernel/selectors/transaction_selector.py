"""
Module: debt_kernel.selectors.transaction_selector
Responsibility: Sums of source events per partner, kind and date range, the
    earliest activity of a partner, the set of partners active in a year,
    and the line-item history behind one ledger period.
Architecture position: Kernel > Selectors.  Reads models/sources and
    models/partner only.

Invariants enforced:
    - Cancelled orders never count.
    - Date ranges are half-open [start, end).
    - An empty sum is Decimal("0"), never None.

Failure modes:
    - Data-store errors propagate unchanged and abort the caller's unit
      of work.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from debt_kernel.db.types import to_decimal
from debt_kernel.domain.dtos import TransactionKind
from debt_kernel.domain.partner import (
    CustomerRef,
    PartnerRef,
    PartnerRole,
    SupplierRef,
)
from debt_kernel.domain.period import DateRange
from debt_kernel.domain.recurrence import PeriodMovements
from debt_kernel.models.sources import (
    BalanceAdjustment,
    OrderStatus,
    PaymentReceipt,
    PaymentVoucher,
    PurchaseOrder,
    ReturnNote,
    SalesOrder,
)
from debt_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class _EventSource:
    """Where one (role, kind) pair of events lives."""

    model: Any
    partner_column: Any
    date_column: Any
    amount_column: Any
    conditions: tuple = ()


_SOURCES: dict[tuple[PartnerRole, TransactionKind], _EventSource] = {
    (PartnerRole.CUSTOMER, TransactionKind.INCREASE): _EventSource(
        SalesOrder,
        SalesOrder.customer_id,
        SalesOrder.order_date,
        SalesOrder.total_amount,
        (SalesOrder.order_status != OrderStatus.CANCELLED.value,),
    ),
    (PartnerRole.CUSTOMER, TransactionKind.DECREASE): _EventSource(
        PaymentReceipt,
        PaymentReceipt.customer_id,
        PaymentReceipt.receipt_date,
        PaymentReceipt.amount,
    ),
    (PartnerRole.CUSTOMER, TransactionKind.RETURN): _EventSource(
        ReturnNote,
        ReturnNote.customer_id,
        ReturnNote.return_date,
        ReturnNote.amount,
    ),
    (PartnerRole.CUSTOMER, TransactionKind.ADJUSTMENT): _EventSource(
        BalanceAdjustment,
        BalanceAdjustment.customer_id,
        BalanceAdjustment.adjustment_date,
        BalanceAdjustment.amount,
    ),
    (PartnerRole.SUPPLIER, TransactionKind.INCREASE): _EventSource(
        PurchaseOrder,
        PurchaseOrder.supplier_id,
        PurchaseOrder.order_date,
        PurchaseOrder.total_amount,
        (PurchaseOrder.status != OrderStatus.CANCELLED.value,),
    ),
    (PartnerRole.SUPPLIER, TransactionKind.DECREASE): _EventSource(
        PaymentVoucher,
        PaymentVoucher.supplier_id,
        PaymentVoucher.payment_date,
        PaymentVoucher.amount,
    ),
    (PartnerRole.SUPPLIER, TransactionKind.RETURN): _EventSource(
        ReturnNote,
        ReturnNote.supplier_id,
        ReturnNote.return_date,
        ReturnNote.amount,
    ),
    (PartnerRole.SUPPLIER, TransactionKind.ADJUSTMENT): _EventSource(
        BalanceAdjustment,
        BalanceAdjustment.supplier_id,
        BalanceAdjustment.adjustment_date,
        BalanceAdjustment.amount,
    ),
}


def _bounded(stmt, date_column, date_range: DateRange):
    if date_range.start is not None:
        stmt = stmt.where(date_column >= date_range.start)
    if date_range.end is not None:
        stmt = stmt.where(date_column < date_range.end)
    return stmt


# ---------------------------------------------------------------------------
# History DTOs (detail view)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderLineRecord:
    order_code: str
    date: datetime
    product_code: str
    product_name: str
    unit: str | None
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderRecord:
    id: UUID
    code: str
    date: datetime
    amount: Decimal
    status: str
    lines: tuple[OrderLineRecord, ...] = ()


@dataclass(frozen=True)
class MovementRecord:
    """A payment, return or adjustment."""

    id: UUID
    code: str
    date: datetime
    amount: Decimal
    note: str | None = None


@dataclass(frozen=True)
class PeriodHistory:
    orders: tuple[OrderRecord, ...] = ()
    payments: tuple[MovementRecord, ...] = ()
    returns: tuple[MovementRecord, ...] = ()
    adjustments: tuple[MovementRecord, ...] = ()

    @property
    def products(self) -> tuple[OrderLineRecord, ...]:
        """All order lines of the period, flattened."""
        return tuple(line for order in self.orders for line in order.lines)


class TransactionSelector(BaseSelector):
    """
    Read side of the source events.

    Guarantees:
        - aggregate() and the movement bundles run on the caller's session.
        - active_partners() lists customers before suppliers, each group
          ordered by id, without duplicates.
    """

    def aggregate(
        self,
        partner: PartnerRef,
        kind: TransactionKind,
        date_range: DateRange,
    ) -> Decimal:
        """Sum of one kind of event for a partner inside ``date_range``."""
        source = _SOURCES[(partner.role, kind)]
        stmt = select(func.coalesce(func.sum(source.amount_column), 0)).where(
            source.partner_column == partner.id,
            *source.conditions,
        )
        stmt = _bounded(stmt, source.date_column, date_range)
        return to_decimal(self.session.scalar(stmt))

    def movements(self, partner: PartnerRef, date_range: DateRange) -> PeriodMovements:
        return PeriodMovements(
            increase=self.aggregate(partner, TransactionKind.INCREASE, date_range),
            decrease=self.aggregate(partner, TransactionKind.DECREASE, date_range),
            returns=self.aggregate(partner, TransactionKind.RETURN, date_range),
            adjustments=self.aggregate(partner, TransactionKind.ADJUSTMENT, date_range),
        )

    def period_movements(self, partner: PartnerRef, year: int) -> PeriodMovements:
        return self.movements(partner, DateRange.for_year(year))

    def history_movements(self, partner: PartnerRef, before: datetime) -> PeriodMovements:
        """Every event strictly before ``before``."""
        return self.movements(partner, DateRange.before(before))

    def first_activity_date(self, partner: PartnerRef) -> datetime | None:
        """Earliest event of any kind for the partner, or None."""
        earliest: datetime | None = None
        for kind in TransactionKind:
            source = _SOURCES[(partner.role, kind)]
            stmt = select(func.min(source.date_column)).where(
                source.partner_column == partner.id,
                *source.conditions,
            )
            found = self.session.scalar(stmt)
            if found is not None and (earliest is None or found < earliest):
                earliest = found
        return earliest

    def first_activity_year(self, partner: PartnerRef) -> int | None:
        first = self.first_activity_date(partner)
        return first.year if first is not None else None

    def active_partners(self, year: int) -> tuple[PartnerRef, ...]:
        """
        Partners with at least one increase or decrease event in ``year``.

        Returns customers first, then suppliers.
        """
        date_range = DateRange.for_year(year)
        partners: list[PartnerRef] = []
        for role, ref_type in (
            (PartnerRole.CUSTOMER, CustomerRef),
            (PartnerRole.SUPPLIER, SupplierRef),
        ):
            ids: set[UUID] = set()
            for kind in (TransactionKind.INCREASE, TransactionKind.DECREASE):
                source = _SOURCES[(role, kind)]
                stmt = select(source.partner_column).distinct().where(*source.conditions)
                stmt = _bounded(stmt, source.date_column, date_range)
                ids.update(pid for pid in self.session.scalars(stmt) if pid is not None)
            partners.extend(ref_type(pid) for pid in sorted(ids, key=str))
        return tuple(partners)

    def period_history(self, partner: PartnerRef, year: int) -> PeriodHistory:
        """Line-item history of one partner-year, newest first."""
        date_range = DateRange.for_year(year)

        order_source = _SOURCES[(partner.role, TransactionKind.INCREASE)]
        order_model = order_source.model
        stmt = (
            select(order_model)
            .options(selectinload(order_model.lines))
            .where(order_source.partner_column == partner.id, *order_source.conditions)
            .order_by(order_source.date_column.desc())
        )
        stmt = _bounded(stmt, order_source.date_column, date_range)
        orders = tuple(
            self._order_record(order) for order in self.session.scalars(stmt)
        )

        return PeriodHistory(
            orders=orders,
            payments=self._movement_records(partner, TransactionKind.DECREASE, date_range),
            returns=self._movement_records(partner, TransactionKind.RETURN, date_range),
            adjustments=self._movement_records(partner, TransactionKind.ADJUSTMENT, date_range),
        )

    @staticmethod
    def _order_record(order) -> OrderRecord:
        if isinstance(order, SalesOrder):
            code, status = order.order_code, order.order_status
        else:
            code, status = order.po_code, order.status
        lines = tuple(
            OrderLineRecord(
                order_code=code,
                date=order.order_date,
                product_code=line.product_code,
                product_name=line.product_name,
                unit=line.unit,
                quantity=to_decimal(line.quantity),
                unit_price=to_decimal(line.unit_price),
                line_total=to_decimal(line.line_total),
            )
            for line in order.lines
        )
        return OrderRecord(
            id=order.id,
            code=code,
            date=order.order_date,
            amount=to_decimal(order.total_amount),
            status=status,
            lines=lines,
        )

    def _movement_records(
        self,
        partner: PartnerRef,
        kind: TransactionKind,
        date_range: DateRange,
    ) -> tuple[MovementRecord, ...]:
        source = _SOURCES[(partner.role, kind)]
        stmt = (
            select(source.model)
            .where(source.partner_column == partner.id, *source.conditions)
            .order_by(source.date_column.desc())
        )
        stmt = _bounded(stmt, source.date_column, date_range)
        return tuple(_movement_record(row) for row in self.session.scalars(stmt))


def _movement_record(row) -> MovementRecord:
    if isinstance(row, PaymentReceipt):
        return MovementRecord(row.id, row.receipt_code, row.receipt_date, to_decimal(row.amount), row.notes)
    if isinstance(row, PaymentVoucher):
        return MovementRecord(row.id, row.voucher_code, row.payment_date, to_decimal(row.amount), row.notes)
    if isinstance(row, ReturnNote):
        return MovementRecord(row.id, row.return_code, row.return_date, to_decimal(row.amount), row.reason)
    return MovementRecord(
        row.id, row.adjustment_code, row.adjustment_date, to_decimal(row.amount), row.reason,
    )
