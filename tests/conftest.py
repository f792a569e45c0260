"""
Pytest fixtures for the debt ledger test suite.

Provides:
- An in-memory SQLite database per test (StaticPool, all tables created)
- A deterministic clock pinned to 2026-02-01
- Seeders for partners, source events and raw ledger rows
- Captured structured logs

Sessions opened by the services and by the seeders are sequential, never
nested: the in-memory database lives on one shared connection.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from itertools import count
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from debt_batch.orchestrator import LedgerOrchestrator
from debt_config.schema import LedgerSettings
from debt_kernel.db.engine import build_engine, create_tables, drop_tables
from debt_kernel.domain.clock import DeterministicClock
from debt_kernel.domain.partner import CustomerRef, PartnerRef, PartnerRole, SupplierRef
from debt_kernel.domain.period import period_label, year_end, year_start
from debt_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from debt_kernel.models import (
    BalanceAdjustment,
    Customer,
    DebtPeriod,
    PaymentReceipt,
    PaymentVoucher,
    PurchaseOrder,
    PurchaseOrderLine,
    ReturnNote,
    SalesOrder,
    SalesOrderLine,
    Supplier,
)
from debt_kernel.services.base import SYSTEM_ACTOR_ID
from debt_services.cache import DebtCache, InMemoryCache
from debt_services.notifications import LoggingNotificationDispatcher
from debt_services.sync_orchestrator import DebtSyncService

# Current year of the test clock
CURRENT_YEAR = 2026


def at(year: int, month: int = 6, day: int = 15, hour: int = 10, minute: int = 0, second: int = 0) -> datetime:
    """A UTC timestamp inside ``year``."""
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


def money(value) -> Decimal:
    return Decimal(str(value))


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _configure_test_logging():
    """Structured logging at DEBUG, with a clean LogContext per test."""
    reset_logging()
    configure_logging(level=logging.DEBUG, handler=logging.NullHandler())
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def captured_logs():
    """
    Capture debt_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, sync_service):
            sync_service.sync_snap(partner, 2024)
            logs = captured_logs()
            assert any(r["message"] == "debt_sync_snap_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("debt_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = build_engine("sqlite:///:memory:")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


# =============================================================================
# Time, configuration, cache
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(datetime(CURRENT_YEAR, 2, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return LedgerSettings(config_id="test", version=1, checksum="test")


@pytest.fixture
def cache_backend(clock):
    return InMemoryCache(clock)


@pytest.fixture
def cache(cache_backend):
    return DebtCache(cache_backend)


@pytest.fixture
def sync_service(session_factory, clock, cache):
    return DebtSyncService(session_factory, clock=clock, cache=cache)


@pytest.fixture
def dispatcher():
    return LoggingNotificationDispatcher()


@pytest.fixture
def ledger(session_factory, settings, clock, cache_backend, dispatcher):
    return LedgerOrchestrator(
        session_factory,
        settings,
        clock=clock,
        cache_backend=cache_backend,
        dispatcher=dispatcher,
    )


# =============================================================================
# Seeders
# =============================================================================


@dataclass
class LedgerSeed:
    """Writes partners, source events and raw ledger rows, one commit each."""

    session_factory: sessionmaker
    _codes: count = field(default_factory=lambda: count(1))

    def _code(self, prefix: str) -> str:
        return f"{prefix}{next(self._codes):05d}"

    def _add(self, *objects) -> None:
        with self.session_factory() as session:
            session.add_all(objects)
            session.commit()

    # -- partners --------------------------------------------------------

    def customer(
        self,
        name: str = "Minh Phat Trading",
        code: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        province: str | None = None,
        assigned_user_id: UUID | None = None,
    ) -> CustomerRef:
        record = Customer(
            id=uuid4(),
            code=code or self._code("KH"),
            name=name,
            email=email,
            phone=phone,
            province=province,
            assigned_user_id=assigned_user_id,
            current_debt=Decimal("0"),
        )
        self._add(record)
        return CustomerRef(record.id)

    def supplier(
        self,
        name: str = "Hoa Binh Steel",
        code: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        assigned_user_id: UUID | None = None,
    ) -> SupplierRef:
        record = Supplier(
            id=uuid4(),
            code=code or self._code("NCC"),
            name=name,
            email=email,
            phone=phone,
            assigned_user_id=assigned_user_id,
            total_payable=Decimal("0"),
        )
        self._add(record)
        return SupplierRef(record.id)

    # -- increase side ---------------------------------------------------

    def order(
        self,
        partner: PartnerRef,
        amount,
        when: datetime,
        status: str = "completed",
        lines: tuple[tuple[str, str, object, object], ...] = (),
    ) -> UUID:
        """Sales order for a customer, purchase order for a supplier.

        ``lines`` are (product_code, product_name, quantity, unit_price).
        """
        if partner.role is PartnerRole.CUSTOMER:
            order = SalesOrder(
                id=uuid4(),
                order_code=self._code("DH"),
                customer_id=partner.id,
                order_date=when,
                order_status=status,
                total_amount=money(amount),
            )
            line_type = SalesOrderLine
        else:
            order = PurchaseOrder(
                id=uuid4(),
                po_code=self._code("PO"),
                supplier_id=partner.id,
                order_date=when,
                status=status,
                total_amount=money(amount),
            )
            line_type = PurchaseOrderLine
        for line_no, (product_code, product_name, quantity, unit_price) in enumerate(lines, start=1):
            order.lines.append(line_type(
                line_no=line_no,
                product_code=product_code,
                product_name=product_name,
                unit="box",
                quantity=money(quantity),
                unit_price=money(unit_price),
                line_total=money(quantity) * money(unit_price),
            ))
        self._add(order)
        return order.id

    # -- decrease side ---------------------------------------------------

    def payment(self, partner: PartnerRef, amount, when: datetime, notes: str | None = None) -> UUID:
        """Receipt from a customer, voucher to a supplier."""
        if partner.role is PartnerRole.CUSTOMER:
            record = PaymentReceipt(
                id=uuid4(),
                receipt_code=self._code("PT"),
                customer_id=partner.id,
                receipt_date=when,
                amount=money(amount),
                notes=notes,
            )
        else:
            record = PaymentVoucher(
                id=uuid4(),
                voucher_code=self._code("PC"),
                supplier_id=partner.id,
                payment_date=when,
                amount=money(amount),
                notes=notes,
            )
        self._add(record)
        return record.id

    def return_note(self, partner: PartnerRef, amount, when: datetime, reason: str | None = None) -> UUID:
        record = ReturnNote(
            id=uuid4(),
            return_code=self._code("TH"),
            customer_id=partner.id if partner.role is PartnerRole.CUSTOMER else None,
            supplier_id=partner.id if partner.role is PartnerRole.SUPPLIER else None,
            return_date=when,
            amount=money(amount),
            reason=reason,
        )
        self._add(record)
        return record.id

    def adjustment(self, partner: PartnerRef, amount, when: datetime, reason: str | None = None) -> UUID:
        record = BalanceAdjustment(
            id=uuid4(),
            adjustment_code=self._code("DC"),
            customer_id=partner.id if partner.role is PartnerRole.CUSTOMER else None,
            supplier_id=partner.id if partner.role is PartnerRole.SUPPLIER else None,
            adjustment_date=when,
            amount=money(amount),
            reason=reason,
        )
        self._add(record)
        return record.id

    # -- raw ledger rows (bypassing the sync path) -----------------------

    def period(
        self,
        partner: PartnerRef,
        year: int,
        opening=0,
        increase=0,
        decrease=0,
        returns=0,
        adjustments=0,
        closing=None,
        is_locked: bool = False,
        notes: str | None = None,
    ) -> UUID:
        opening, increase, decrease = money(opening), money(increase), money(decrease)
        returns, adjustments = money(returns), money(adjustments)
        if closing is None:
            closing = opening + increase - (decrease + returns + adjustments)
        row = DebtPeriod(
            id=uuid4(),
            customer_id=partner.id if partner.role is PartnerRole.CUSTOMER else None,
            supplier_id=partner.id if partner.role is PartnerRole.SUPPLIER else None,
            period_name=period_label(year),
            start_time=year_start(year),
            end_time=year_end(year),
            opening_balance=opening,
            increasing_amount=increase,
            decreasing_amount=decrease,
            return_amount=returns,
            adjustment_amount=adjustments,
            closing_balance=money(closing),
            notes=notes,
            opening_method="snapshot",
            is_locked=is_locked,
            created_by_id=SYSTEM_ACTOR_ID,
        )
        self._add(row)
        return row.id


@pytest.fixture
def seed(session_factory):
    return LedgerSeed(session_factory)


@pytest.fixture
def seed_factory():
    """LedgerSeed class, for seeding databases other than the test's own."""
    return LedgerSeed
