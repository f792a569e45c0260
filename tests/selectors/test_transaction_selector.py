"""
Tests for TransactionSelector and PeriodSelector.

Sums per kind and year, cancelled orders, the Dec 31 boundary, first
activity, the active-partner set and the period history.
"""

from datetime import datetime, timezone
from decimal import Decimal

from debt_kernel.domain.dtos import TransactionKind
from debt_kernel.domain.period import DateRange, year_start
from debt_kernel.selectors.period_selector import PeriodSelector
from debt_kernel.selectors.transaction_selector import TransactionSelector


def at(year, month=6, day=15, hour=10, minute=0, second=0, microsecond=0):
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=timezone.utc)


class TestAggregate:
    def test_sums_per_kind_for_customer(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 1_000_000, at(2024, 1, 10))
        seed.order(c, 250_000, at(2024, 3, 1))
        seed.payment(c, 600_000, at(2024, 6, 1))
        seed.return_note(c, 30_000, at(2024, 7, 1))
        seed.adjustment(c, 5_000, at(2024, 8, 1))

        with session_factory() as session:
            m = TransactionSelector(session).period_movements(c, 2024)

        assert m.increase == Decimal("1250000")
        assert m.decrease == Decimal("600000")
        assert m.returns == Decimal("30000")
        assert m.adjustments == Decimal("5000")

    def test_supplier_uses_purchase_side(self, seed, session_factory):
        s = seed.supplier()
        seed.order(s, 700, at(2024))
        seed.payment(s, 200, at(2024))

        with session_factory() as session:
            m = TransactionSelector(session).period_movements(s, 2024)

        assert (m.increase, m.decrease) == (Decimal("700"), Decimal("200"))

    def test_cancelled_orders_never_count(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 1000, at(2024), status="cancelled")
        seed.order(c, 300, at(2024), status="pending")

        with session_factory() as session:
            total = TransactionSelector(session).aggregate(
                c, TransactionKind.INCREASE, DateRange.for_year(2024),
            )

        assert total == Decimal("300")

    def test_empty_sum_is_zero(self, seed, session_factory):
        c = seed.customer()
        with session_factory() as session:
            m = TransactionSelector(session).period_movements(c, 2024)
        assert m.increase == Decimal("0")
        assert not m.has_activity

    def test_late_december_event_counts_in_its_year(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 900, at(2024, 12, 31, 23, 59, 59, 500000))
        seed.order(c, 100, at(2025, 1, 1, 0, 0, 0))

        with session_factory() as session:
            selector = TransactionSelector(session)
            assert selector.period_movements(c, 2024).increase == Decimal("900")
            assert selector.period_movements(c, 2025).increase == Decimal("100")

    def test_history_is_strictly_before(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 500, at(2022))
        seed.payment(c, 200, at(2023))
        seed.order(c, 999, at(2024, 1, 1, 0, 0, 0))

        with session_factory() as session:
            history = TransactionSelector(session).history_movements(c, year_start(2024))

        assert history.net == Decimal("300")

    def test_other_partners_do_not_leak(self, seed, session_factory):
        c1, c2 = seed.customer(), seed.customer()
        seed.order(c1, 100, at(2024))
        seed.order(c2, 5000, at(2024))

        with session_factory() as session:
            assert TransactionSelector(session).period_movements(c1, 2024).increase == Decimal("100")


class TestFirstActivity:
    def test_earliest_over_all_kinds(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 100, at(2023))
        seed.adjustment(c, 10, at(2021, 3, 1))

        with session_factory() as session:
            assert TransactionSelector(session).first_activity_year(c) == 2021

    def test_cancelled_order_is_not_activity(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 100, at(2020), status="cancelled")
        seed.payment(c, 10, at(2022))

        with session_factory() as session:
            assert TransactionSelector(session).first_activity_year(c) == 2022

    def test_no_activity(self, seed, session_factory):
        c = seed.customer()
        with session_factory() as session:
            assert TransactionSelector(session).first_activity_date(c) is None
            assert TransactionSelector(session).first_activity_year(c) is None


class TestActivePartners:
    def test_increase_or_decrease_in_year(self, seed, session_factory):
        ordering = seed.customer()
        paying = seed.customer()
        returning_only = seed.customer()
        idle = seed.customer()
        supplier = seed.supplier()
        seed.order(ordering, 100, at(2024))
        seed.payment(paying, 100, at(2024))
        seed.return_note(returning_only, 50, at(2024))
        seed.order(idle, 100, at(2023))
        seed.payment(supplier, 10, at(2024))

        with session_factory() as session:
            active = TransactionSelector(session).active_partners(2024)

        customers = sorted((ordering, paying), key=lambda r: str(r.id))
        assert active == (*customers, supplier)

    def test_partner_listed_once(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 100, at(2024, 1))
        seed.order(c, 100, at(2024, 2))
        seed.payment(c, 100, at(2024, 3))

        with session_factory() as session:
            assert TransactionSelector(session).active_partners(2024) == (c,)

    def test_only_cancelled_orders_is_inactive(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 100, at(2024), status="cancelled")

        with session_factory() as session:
            assert TransactionSelector(session).active_partners(2024) == ()


class TestPeriodHistory:
    def test_history_lists_newest_first(self, seed, session_factory):
        c = seed.customer()
        seed.order(c, 200, at(2024, 2), lines=(("P-1", "Cement", 2, 100),))
        seed.order(c, 300, at(2024, 5), lines=(("P-2", "Sand", "1.5", 200),))
        seed.order(c, 999, at(2023, 5))
        seed.payment(c, 50, at(2024, 6), notes="cash")
        seed.return_note(c, 20, at(2024, 7), reason="damaged")
        seed.adjustment(c, 5, at(2024, 8), reason="rounding")

        with session_factory() as session:
            history = TransactionSelector(session).period_history(c, 2024)

        assert [o.amount for o in history.orders] == [Decimal("300"), Decimal("200")]
        assert [p.product_code for p in history.products] == ["P-2", "P-1"]
        assert history.products[0].line_total == Decimal("300")
        assert history.payments[0].note == "cash"
        assert history.returns[0].note == "damaged"
        assert history.adjustments[0].note == "rounding"


class TestPeriodSelector:
    def test_get_and_closing_for(self, seed, session_factory):
        c = seed.customer(name="Alpha")
        seed.period(c, 2023, opening=100, increase=50)

        with session_factory() as session:
            periods = PeriodSelector(session)
            row = periods.get(c, 2023)
            assert row.partner == c
            assert row.partner_name == "Alpha"
            assert row.closing_balance == Decimal("150")
            assert row.expected_closing == Decimal("150")
            assert periods.closing_for(c, 2023) == Decimal("150")
            assert periods.get(c, 2024) is None
            assert periods.closing_for(c, 2024) is None

    def test_rows_for_year_customers_first(self, seed, session_factory):
        s = seed.supplier()
        c = seed.customer()
        seed.period(s, 2024)
        seed.period(c, 2024)
        seed.period(c, 2023)

        with session_factory() as session:
            periods = PeriodSelector(session)
            rows = periods.rows_for_year(2024)
            by_key = periods.by_partner_for_year(2024)
            history = periods.rows_for_partner(c)

        assert [r.partner for r in rows] == [c, s]
        assert set(by_key) == {c.key, s.key}
        assert [r.period_name for r in history] == ["2023", "2024"]
