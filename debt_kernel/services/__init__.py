"""Flush-only kernel services."""

from debt_kernel.services.base import SYSTEM_ACTOR_ID, BaseService
from debt_kernel.services.partner_directory import PartnerDirectory
from debt_kernel.services.period_ledger_store import PeriodLedgerStore

__all__ = [
    "BaseService",
    "SYSTEM_ACTOR_ID",
    "PartnerDirectory",
    "PeriodLedgerStore",
]
