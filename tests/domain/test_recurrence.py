"""
Tests for the balance recurrence (debt_kernel/domain/recurrence.py).

Covers the closing formula, chaining of closings into openings, the paid
threshold, note handling, and presentation rounding.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from debt_kernel.db.types import present_money, to_decimal
from debt_kernel.domain.recurrence import (
    FALLBACK_NOTE_TAG,
    ZERO,
    DebtStatus,
    PeriodMovements,
    append_note,
    combine_notes,
    compute_closing,
    debt_status,
    expected_closing,
    fallback_note,
    within_tolerance,
)

amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

movements = st.builds(
    PeriodMovements,
    increase=amounts,
    decrease=amounts,
    returns=amounts,
    adjustments=amounts,
)


class TestComputeClosing:
    def test_single_year_scenario(self):
        closing = compute_closing(
            ZERO,
            PeriodMovements(increase=Decimal("1000000"), decrease=Decimal("600000")),
        )
        assert closing == Decimal("400000")

    def test_returns_and_adjustments_reduce_balance(self):
        m = PeriodMovements(
            increase=Decimal("500"),
            decrease=Decimal("100"),
            returns=Decimal("50"),
            adjustments=Decimal("25"),
        )
        assert m.total_decrease == Decimal("175")
        assert compute_closing(Decimal("10"), m) == Decimal("335")

    def test_no_activity_carries_opening(self):
        assert compute_closing(Decimal("123.45"), PeriodMovements()) == Decimal("123.45")
        assert not PeriodMovements().has_activity

    def test_negative_closing_is_kept(self):
        closing = compute_closing(ZERO, PeriodMovements(decrease=Decimal("200")))
        assert closing == Decimal("-200")

    @given(opening=amounts, m=movements)
    def test_closing_matches_formula(self, opening, m):
        closing = compute_closing(opening, m)
        assert closing == opening + m.increase - (m.decrease + m.returns + m.adjustments)
        assert closing == expected_closing(
            opening, m.increase, m.decrease, m.returns, m.adjustments,
        )

    @settings(max_examples=50)
    @given(opening=amounts, years=st.lists(movements, min_size=1, max_size=6))
    def test_chained_years_equal_one_aggregate(self, opening, years):
        """Walking year by year lands where one sum over all years lands."""
        current = opening
        for m in years:
            current = compute_closing(current, m)

        total = PeriodMovements(
            increase=sum((m.increase for m in years), ZERO),
            decrease=sum((m.decrease for m in years), ZERO),
            returns=sum((m.returns for m in years), ZERO),
            adjustments=sum((m.adjustments for m in years), ZERO),
        )
        assert current == compute_closing(opening, total)


class TestStatusAndTolerance:
    @pytest.mark.parametrize(
        "closing,expected",
        [
            (Decimal("-5"), DebtStatus.PAID),
            (Decimal("0"), DebtStatus.PAID),
            (Decimal("1000"), DebtStatus.PAID),
            (Decimal("1000.01"), DebtStatus.UNPAID),
            (Decimal("400000"), DebtStatus.UNPAID),
        ],
    )
    def test_paid_threshold_is_inclusive(self, closing, expected):
        assert debt_status(closing, Decimal("1000")) is expected

    def test_within_tolerance_is_inclusive(self):
        assert within_tolerance(Decimal("100"), Decimal("110"), Decimal("10"))
        assert within_tolerance(Decimal("110"), Decimal("100"), Decimal("10"))
        assert not within_tolerance(Decimal("100"), Decimal("110.01"), Decimal("10"))


class TestNotes:
    def test_append_to_empty(self):
        assert append_note(None, "first") == "first"
        assert append_note("", "first") == "first"

    def test_append_keeps_prior_text(self):
        assert append_note("first", "second") == "first\nsecond"

    def test_same_note_twice_is_noop(self):
        notes = append_note(append_note(None, "auto history sync 2023"), "auto history sync 2023")
        assert notes == "auto history sync 2023"
        assert append_note("a\nb", "b") == "a\nb"

    def test_empty_note_leaves_existing(self):
        assert append_note("kept", None) == "kept"
        assert append_note("kept", "") == "kept"

    def test_combine_notes(self):
        assert combine_notes(" manual fix ", None, "[AGGREGATE_FALLBACK] x") == (
            "manual fix [AGGREGATE_FALLBACK] x"
        )
        assert combine_notes(None, "  ") is None

    def test_fallback_note_names_missing_period(self):
        note = fallback_note("2023")
        assert note.startswith(FALLBACK_NOTE_TAG)
        assert "2023" in note


class TestPresentation:
    def test_ceiling_rounding(self):
        assert present_money(Decimal("400000.2")) == "400001"
        assert present_money(Decimal("400000")) == "400000"

    def test_negative_rounds_toward_zero(self):
        assert present_money(Decimal("-10.5")) == "-10"

    def test_negative_zero_is_normalized(self):
        assert present_money(Decimal("-0.4")) == "0"

    def test_places(self):
        assert present_money(Decimal("12.341"), places=2) == "12.35"

    def test_to_decimal(self):
        assert to_decimal(None) == ZERO
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(7) == Decimal("7")
        assert to_decimal("2.50") == Decimal("2.50")
