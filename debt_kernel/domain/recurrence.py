"""
Balance recurrence -- the arithmetic of a ledger period.

Pure functions, no I/O.  For one partner and one year:

    closing = opening + increase - (decrease + returns + adjustments)

Amounts keep full Decimal precision here; rounding happens only when a
value is presented (see debt_kernel.db.types.present_money).
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")

FALLBACK_NOTE_TAG = "[AGGREGATE_FALLBACK]"


class OpeningMethod(str, Enum):
    """How a period's opening balance was obtained."""

    CARRIED_FORWARD = "carried_forward"      # previous year's closing in a full walk
    SNAPSHOT = "snapshot"                    # stored prior-year row
    AGGREGATE_FALLBACK = "aggregate_fallback"  # snapshot wanted, no prior row
    HISTORY_AGGREGATE = "history_aggregate"  # first year of a full walk


class DebtStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"


@dataclass(frozen=True)
class PeriodMovements:
    """Sums of each transaction kind over a date range."""

    increase: Decimal = ZERO
    decrease: Decimal = ZERO
    returns: Decimal = ZERO
    adjustments: Decimal = ZERO

    @property
    def total_decrease(self) -> Decimal:
        return self.decrease + self.returns + self.adjustments

    @property
    def net(self) -> Decimal:
        return self.increase - self.total_decrease

    @property
    def has_activity(self) -> bool:
        return any(
            amount != ZERO
            for amount in (self.increase, self.decrease, self.returns, self.adjustments)
        )


def compute_closing(opening: Decimal, movements: PeriodMovements) -> Decimal:
    return opening + movements.net


def expected_closing(
    opening: Decimal,
    increase: Decimal,
    decrease: Decimal,
    returns: Decimal = ZERO,
    adjustments: Decimal = ZERO,
) -> Decimal:
    """Closing implied by stored row components (used by the auditor)."""
    return compute_closing(
        opening,
        PeriodMovements(increase, decrease, returns, adjustments),
    )


def within_tolerance(a: Decimal, b: Decimal, epsilon: Decimal) -> bool:
    return abs(a - b) <= epsilon


def debt_status(closing: Decimal, paid_threshold: Decimal) -> DebtStatus:
    """A balance at or below the threshold counts as settled."""
    if closing <= paid_threshold:
        return DebtStatus.PAID
    return DebtStatus.UNPAID


def fallback_note(previous_label: str) -> str:
    return (
        f"{FALLBACK_NOTE_TAG} opening balance re-aggregated from full history; "
        f"no period {previous_label} on file"
    )


def append_note(existing: str | None, note: str | None) -> str | None:
    """
    Append ``note`` on a new line, keeping prior text.

    Appending the note that is already the last line is a no-op, so
    re-running the same sync leaves the notes unchanged.
    """
    if not note:
        return existing
    if not existing:
        return note
    if existing == note or existing.endswith(f"\n{note}"):
        return existing
    return f"{existing}\n{note}"


def combine_notes(*parts: str | None) -> str | None:
    """Join the non-empty parts of one sync's annotation into a single line."""
    joined = " ".join(part.strip() for part in parts if part and part.strip())
    return joined or None
