"""
Ledger periods -- one calendar year per partner.

Period labels are the 4-digit year as a string so they sort lexically and
numerically alike.  Date ranges are half-open ``[start, end)``: the range
for a year runs from Jan 1 00:00 up to, but not including, Jan 1 of the
next year, so events late on Dec 31 are counted.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from debt_kernel.domain.clock import Clock
from debt_kernel.exceptions import InvalidPeriodError

MIN_YEAR = 1900
MAX_YEAR = 9998


def validate_year(year: object) -> int:
    """
    Normalize a caller-supplied year into an int.

    Accepts an int or a 4-digit string.

    Raises:
        InvalidPeriodError: anything else, or a year outside MIN_YEAR..MAX_YEAR.
    """
    if isinstance(year, bool):
        raise InvalidPeriodError(year, "year must be an integer")
    if isinstance(year, str):
        stripped = year.strip()
        if len(stripped) != 4 or not stripped.isdigit():
            raise InvalidPeriodError(year, "year must be a 4-digit number")
        year = int(stripped)
    if not isinstance(year, int):
        raise InvalidPeriodError(year, "year must be an integer")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriodError(year, f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return year


def resolve_year(year: object, clock: Clock) -> int:
    """Validate ``year``, defaulting to the clock's current year when None."""
    if year is None:
        return clock.current_year()
    return validate_year(year)


def period_label(year: int) -> str:
    return f"{year:04d}"


def year_start(year: int) -> datetime:
    return datetime(year, 1, 1, tzinfo=timezone.utc)


def year_end(year: int) -> datetime:
    """Last representable instant of the year (stored as end_time)."""
    return datetime(year, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)


@dataclass(frozen=True)
class DateRange:
    """
    Half-open time range ``[start, end)``.

    Either bound may be None for an unbounded side.
    """

    start: datetime | None
    end: datetime | None

    @classmethod
    def for_year(cls, year: int) -> "DateRange":
        return cls(year_start(year), year_start(year + 1))

    @classmethod
    def before(cls, moment: datetime) -> "DateRange":
        """Everything strictly before ``moment``."""
        return cls(None, moment)

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True
