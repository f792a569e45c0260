"""
DebtReadService -- cached list and detail views over the ledger.

Responsibility:
    list_debts() pages through the ledger of one year in one of two modes:

    - Typed (partner_type given): the partner table is queried first and
      the year's period row is left-joined, so partners without a period
      still appear with zero amounts.  Filtering on ``paid`` includes
      those partners.
    - Untyped: period rows are queried directly, ordered by closing
      balance descending.  Partners without a period in the year are
      omitted.

    A summary of opening / increase / payment / closing is summed over the
    period rows matching the same predicate.

    get_detail() returns one partner's info, the year's figures (zeroed
    when no row exists) and the line-item history behind them.

Architecture position:
    Services.  Read-only; opens its own session per call and never
    commits.  Results are JSON documents cached through DebtCache and
    dropped by the sync paths after every commit.

Invariants enforced:
    - Amounts are rounded (ceiling, presentation_places) only here.
    - Status is ``paid`` when closing <= paid_threshold.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from debt_config.schema import LedgerPolicy, ViewPolicy
from debt_kernel.db.types import present_money, to_decimal
from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.domain.dtos import DebtListFilters
from debt_kernel.domain.partner import PartnerRef, PartnerRole
from debt_kernel.domain.period import period_label, resolve_year
from debt_kernel.domain.recurrence import ZERO, DebtStatus, debt_status
from debt_kernel.logging_config import get_logger
from debt_kernel.models.partner import Customer, Supplier
from debt_kernel.models.period import DebtPeriod
from debt_kernel.selectors.period_selector import PeriodSelector
from debt_kernel.selectors.transaction_selector import (
    MovementRecord,
    OrderLineRecord,
    OrderRecord,
    TransactionSelector,
)
from debt_kernel.services.partner_directory import PartnerDirectory
from debt_services.cache import DebtCache

logger = get_logger("services.read_views")


def _plain(value: Decimal) -> str:
    """Decimal without exponent or trailing zeros ("2.5", "10")."""
    return format(to_decimal(value).normalize(), "f")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _contains(column, text: str):
    """Case-insensitive substring match; % and _ in ``text`` match literally."""
    return column.icontains(text, autoescape=True)


class DebtReadService:
    """
    List and detail views of the debt ledger.

    Args:
        session_factory: Opens a read session per call.
        clock: Decides the default year.
        ledger_policy: Paid threshold and presentation rounding.
        view_policy: Page sizes.
        cache: Optional DebtCache; without one every call hits the database.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        ledger_policy: LedgerPolicy | None = None,
        view_policy: ViewPolicy | None = None,
        cache: DebtCache | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._ledger_policy = ledger_policy or LedgerPolicy()
        self._view_policy = view_policy or ViewPolicy()
        self._cache = cache

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    def _money(self, value: Any) -> str:
        return present_money(value, self._ledger_policy.presentation_places)

    def _status(self, closing: Decimal) -> str:
        return debt_status(closing, self._ledger_policy.paid_threshold).value

    def _page_size(self, limit: int | None) -> int:
        if limit is None or limit < 1:
            return self._view_policy.default_page_size
        return min(limit, self._view_policy.max_page_size)

    # ------------------------------------------------------------------
    # List view
    # ------------------------------------------------------------------

    def list_debts(self, filters: DebtListFilters | None = None) -> dict[str, Any]:
        filters = filters or DebtListFilters()
        key = None
        if self._cache is not None:
            key = self._cache.list_key(filters.canonical())
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        year = resolve_year(filters.year, self._clock)
        page = max(filters.page, 1)
        limit = self._page_size(filters.limit)

        with self._session_factory() as session:
            if filters.partner_type is not None:
                rows, total, summary = self._typed_page(session, filters, year, page, limit)
            else:
                rows, total, summary = self._untyped_page(session, filters, year, page, limit)

        result = {
            "data": rows,
            "meta": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": math.ceil(total / limit) if total else 0,
                "summary": summary,
            },
        }

        if self._cache is not None:
            self._cache.set(key, result)
        logger.debug(
            "debt_list_built",
            extra={"year": year, "total": total, "page": page, "typed": filters.partner_type is not None},
        )
        return result

    def _typed_page(
        self,
        session: Session,
        filters: DebtListFilters,
        year: int,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int, dict[str, str]]:
        role = filters.partner_type
        model = partner_model_for_role(role)
        fk = DebtPeriod.customer_id if role is PartnerRole.CUSTOMER else DebtPeriod.supplier_id
        label = period_label(year)
        threshold = self._ledger_policy.paid_threshold

        conditions = []
        if filters.search:
            conditions.append(or_(
                _contains(model.name, filters.search),
                _contains(model.code, filters.search),
                _contains(model.phone, filters.search),
            ))
        if filters.assigned_user_id is not None:
            conditions.append(model.assigned_user_id == filters.assigned_user_id)
        if role is PartnerRole.CUSTOMER and filters.province:
            conditions.append(_contains(Customer.province, filters.province))

        if filters.status is DebtStatus.PAID:
            conditions.append(or_(DebtPeriod.id.is_(None), DebtPeriod.closing_balance <= threshold))
        elif filters.status is DebtStatus.UNPAID:
            conditions.append(DebtPeriod.closing_balance > threshold)

        joined = and_(fk == model.id, DebtPeriod.period_name == label)

        total = session.scalar(
            select(func.count(model.id))
            .select_from(model)
            .outerjoin(DebtPeriod, joined)
            .where(*conditions)
        ) or 0

        stmt = (
            select(model, DebtPeriod)
            .outerjoin(DebtPeriod, joined)
            .where(*conditions)
            .order_by(model.name, model.code)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = [
            self._row(partner, period, role, label)
            for partner, period in session.execute(stmt).unique()
        ]

        summary_stmt = (
            self._summary_select()
            .select_from(model)
            .join(DebtPeriod, joined)
            .where(*conditions)
        )
        return rows, total, self._summary(session, summary_stmt)

    def _untyped_page(
        self,
        session: Session,
        filters: DebtListFilters,
        year: int,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int, dict[str, str]]:
        threshold = self._ledger_policy.paid_threshold
        conditions = [DebtPeriod.period_name == period_label(year)]
        if filters.search:
            conditions.append(or_(
                _contains(Customer.name, filters.search),
                _contains(Customer.code, filters.search),
                _contains(Supplier.name, filters.search),
                _contains(Supplier.code, filters.search),
            ))
        if filters.assigned_user_id is not None:
            conditions.append(or_(
                Customer.assigned_user_id == filters.assigned_user_id,
                Supplier.assigned_user_id == filters.assigned_user_id,
            ))
        if filters.status is DebtStatus.PAID:
            conditions.append(DebtPeriod.closing_balance <= threshold)
        elif filters.status is DebtStatus.UNPAID:
            conditions.append(DebtPeriod.closing_balance > threshold)

        def scoped(stmt):
            return (
                stmt.outerjoin(Customer, DebtPeriod.customer_id == Customer.id)
                .outerjoin(Supplier, DebtPeriod.supplier_id == Supplier.id)
                .where(*conditions)
            )

        total = session.scalar(
            scoped(select(func.count(DebtPeriod.id)).select_from(DebtPeriod))
        ) or 0

        stmt = (
            scoped(select(DebtPeriod))
            .order_by(DebtPeriod.closing_balance.desc(), DebtPeriod.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = []
        for period in session.scalars(stmt).unique():
            partner = period.customer if period.customer_id is not None else period.supplier
            rows.append(self._row(partner, period, period.partner_ref.role, period.period_name))

        summary_stmt = scoped(self._summary_select().select_from(DebtPeriod))
        return rows, total, self._summary(session, summary_stmt)

    def _row(
        self,
        partner: Customer | Supplier,
        period: DebtPeriod | None,
        role: PartnerRole,
        label: str,
    ) -> dict[str, Any]:
        if period is None:
            amounts = {name: ZERO for name in _AMOUNT_FIELDS}
        else:
            amounts = {name: to_decimal(getattr(period, name)) for name in _AMOUNT_FIELDS}
        closing = amounts["closing_balance"]
        row = {
            "id": str(period.id) if period is not None else f"virtual-{partner.id}",
            "type": role.value,
            "partner_id": str(partner.id),
            "code": partner.code,
            "name": partner.name,
            "phone": partner.phone,
            "assigned_user_id": str(partner.assigned_user_id) if partner.assigned_user_id else None,
            "period_name": label,
            "status": self._status(closing),
            "notes": (period.notes or "") if period is not None else "",
            "is_locked": period.is_locked if period is not None else False,
            "updated_at": _iso(period.updated_at) if period is not None else None,
        }
        row.update({name: self._money(value) for name, value in amounts.items()})
        return row

    @staticmethod
    def _summary_select():
        return select(
            func.coalesce(func.sum(DebtPeriod.opening_balance), 0),
            func.coalesce(func.sum(DebtPeriod.increasing_amount), 0),
            func.coalesce(func.sum(DebtPeriod.decreasing_amount), 0),
            func.coalesce(func.sum(DebtPeriod.closing_balance), 0),
        )

    def _summary(self, session: Session, stmt) -> dict[str, str]:
        opening, increase, payment, closing = session.execute(stmt).one()
        return {
            "opening": self._money(opening),
            "increase": self._money(increase),
            "payment": self._money(payment),
            "closing": self._money(closing),
        }

    # ------------------------------------------------------------------
    # Detail view
    # ------------------------------------------------------------------

    def get_detail(self, partner: PartnerRef, year: int | str | None = None) -> dict[str, Any]:
        """
        One partner's figures and history for ``year``.

        Raises:
            PartnerNotFoundError: no such customer / supplier.
        """
        target = resolve_year(year, self._clock)
        key = None
        if self._cache is not None:
            key = self._cache.detail_key(partner, target)
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        with self._session_factory() as session:
            record = PartnerDirectory(session, self._clock).require(partner)
            row = PeriodSelector(session).get(partner, target)
            history = TransactionSelector(session).period_history(partner, target)
            info = self._info(record, partner)

        if row is None:
            financials = {
                "opening": self._money(ZERO),
                "increase": self._money(ZERO),
                "payment": self._money(ZERO),
                "return_amount": self._money(ZERO),
                "adjustment_amount": self._money(ZERO),
                "closing": self._money(ZERO),
                "status": DebtStatus.PAID.value,
                "opening_method": None,
                "notes": "",
                "is_locked": False,
            }
        else:
            financials = {
                "opening": self._money(row.opening_balance),
                "increase": self._money(row.increasing_amount),
                "payment": self._money(row.decreasing_amount),
                "return_amount": self._money(row.return_amount),
                "adjustment_amount": self._money(row.adjustment_amount),
                "closing": self._money(row.closing_balance),
                "status": self._status(row.closing_balance),
                "opening_method": row.opening_method,
                "notes": row.notes or "",
                "is_locked": row.is_locked,
            }

        result = {
            "info": info,
            "period_name": period_label(target),
            "has_data": row is not None or bool(history.orders),
            "financials": financials,
            "history": {
                "orders": [self._order(order) for order in history.orders],
                "payments": [self._movement(item) for item in history.payments],
                "products": [self._product(line) for line in history.products],
                "returns": [self._movement(item) for item in history.returns],
                "adjustments": [self._movement(item) for item in history.adjustments],
            },
        }

        if self._cache is not None:
            self._cache.set(key, result)
        return result

    @staticmethod
    def _info(record: Customer | Supplier, partner: PartnerRef) -> dict[str, Any]:
        info = {
            "id": str(record.id),
            "type": partner.role.value,
            "code": record.code,
            "name": record.name,
            "phone": record.phone,
            "email": record.email,
            "address": record.address,
            "assigned_user_id": str(record.assigned_user_id) if record.assigned_user_id else None,
        }
        if isinstance(record, Customer):
            info["province"] = record.province
            info["district"] = record.district
        return info

    def _order(self, order: OrderRecord) -> dict[str, Any]:
        return {
            "id": str(order.id),
            "code": order.code,
            "date": _iso(order.date),
            "amount": self._money(order.amount),
            "status": order.status,
            "line_count": len(order.lines),
        }

    def _product(self, line: OrderLineRecord) -> dict[str, Any]:
        return {
            "order_code": line.order_code,
            "date": _iso(line.date),
            "product_code": line.product_code,
            "product_name": line.product_name,
            "unit": line.unit,
            "quantity": _plain(line.quantity),
            "unit_price": self._money(line.unit_price),
            "line_total": self._money(line.line_total),
        }

    def _movement(self, item: MovementRecord) -> dict[str, Any]:
        return {
            "id": str(item.id),
            "code": item.code,
            "date": _iso(item.date),
            "amount": self._money(item.amount),
            "note": item.note,
        }


_AMOUNT_FIELDS = (
    "opening_balance",
    "increasing_amount",
    "decreasing_amount",
    "return_amount",
    "adjustment_amount",
    "closing_balance",
)


def partner_model_for_role(role: PartnerRole) -> type[Customer] | type[Supplier]:
    return Customer if role is PartnerRole.CUSTOMER else Supplier
