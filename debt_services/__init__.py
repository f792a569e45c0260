"""
debt_services -- Package init and public API.

Responsibility:
    Stateful services over the ledger kernel: the sync paths (full and
    snapshot), the integrity auditor, the cached read views and debt
    notices, plus the cache and notification seams they depend on.  This is
    the only layer that opens units of work.

Architecture position:
    Services.

    Dependency direction:
        debt_services/ -> debt_kernel/, debt_config/  (allowed)
        debt_kernel/   -> debt_services/              (FORBIDDEN)
"""

from debt_kernel.logging_config import get_logger

logger = get_logger("services")

from debt_services import observability
from debt_services.cache import CacheBackend, DebtCache, InMemoryCache
from debt_services.integrity_auditor import IntegrityAuditor
from debt_services.notice_service import DebtNoticeService
from debt_services.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    SmtpNotificationDispatcher,
    SmtpSettings,
)
from debt_services.read_views import DebtReadService
from debt_services.recurrence_engine import BalanceRecurrenceEngine, Opening
from debt_services.sync_orchestrator import DebtSyncService

__all__ = [
    "BalanceRecurrenceEngine",
    "CacheBackend",
    "DebtCache",
    "DebtNoticeService",
    "DebtReadService",
    "DebtSyncService",
    "InMemoryCache",
    "IntegrityAuditor",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "Opening",
    "SmtpNotificationDispatcher",
    "SmtpSettings",
    "observability",
]
