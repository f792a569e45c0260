"""Read-only selectors over source events and ledger periods."""

from debt_kernel.selectors.base import BaseSelector
from debt_kernel.selectors.period_selector import LedgerRow, PeriodSelector
from debt_kernel.selectors.transaction_selector import (
    MovementRecord,
    OrderLineRecord,
    OrderRecord,
    PeriodHistory,
    TransactionSelector,
)

__all__ = [
    "BaseSelector",
    "TransactionSelector",
    "PeriodSelector",
    "LedgerRow",
    "PeriodHistory",
    "OrderRecord",
    "OrderLineRecord",
    "MovementRecord",
]
