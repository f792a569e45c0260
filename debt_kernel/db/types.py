"""
Module: debt_kernel.db.types
Responsibility: Annotated column type aliases plus the two sanctioned money
    helpers of the ledger: coercion into Decimal and presentation rounding.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the ledger.  Every monetary column uses Money
      (Numeric(38, 9)).
    - Rounding happens at presentation time only.  present_money() is the
      ONLY place an amount is rounded; persisted balances keep full
      precision so chained periods never compound rounding error.
"""

from decimal import ROUND_CEILING, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Period label: the 4-digit year as a string ("2024")
PeriodLabel = Annotated[str, String(4)]

# Short identifier strings (partner codes, document codes)
ShortCode = Annotated[str, String(50)]

# Long text for notes and descriptions
LongText = Annotated[str, String(4000)]

ZERO = Decimal("0")


def to_decimal(value: object) -> Decimal:
    """
    Coerce a stored or aggregated amount into a Decimal.

    None (an empty SUM) becomes zero.  Floats are converted through their
    string form so that 0.1 stays 0.1.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def present_money(value: object, places: int = 0) -> str:
    """
    Round an amount UP to ``places`` decimals and render it as a string.

    Example:
        present_money(Decimal("400000.2")) -> "400001"
    """
    exponent = Decimal(1).scaleb(-places)
    rounded = to_decimal(value).quantize(exponent, rounding=ROUND_CEILING)
    if rounded.is_zero():
        rounded = abs(rounded)
    return str(rounded)
