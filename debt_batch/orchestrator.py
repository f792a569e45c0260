"""
LedgerOrchestrator -- composition root for the debt ledger.

Contract:
    Builds the cache, sync service, batch runner, integrity auditor, read
    views and notice service from one session factory, one clock and one
    LedgerSettings.  This is the single place where ledger dependencies are
    composed; nothing below it constructs its own collaborators.
    The cache backend and the notice dispatcher follow ``cache.backend``
    and ``notices.channel`` unless the caller injects its own.

Architecture: debt_batch (top-level).  The canonical entry point for
    scripts and request handlers.

Invariants enforced:
    - Every service receives the same Clock and the same DebtCache, so a
      sync's invalidation reaches the read views it serves.
"""

from __future__ import annotations

import os
import time
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from debt_config import get_active_config
from debt_config.schema import (
    CacheBackendKind,
    CachePolicy,
    LedgerSettings,
    NoticeChannel,
    NoticePolicy,
)
from debt_kernel.db.engine import get_session_factory
from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.logging_config import get_logger
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
from debt_services.sync_orchestrator import DebtSyncService

from debt_batch.runner import DebtBatchRunner

logger = get_logger("batch.orchestrator")


def build_cache_backend(policy: CachePolicy, clock: Clock) -> CacheBackend:
    """Cache backend named by ``cache.backend``."""
    if policy.backend is CacheBackendKind.REDIS:
        # redis is an optional extra; import only when configured.
        from debt_services.cache_redis import RedisCache

        return RedisCache.from_url(policy.redis_url)
    return InMemoryCache(clock)


def build_dispatcher(policy: NoticePolicy) -> NotificationDispatcher:
    """Notice dispatcher named by ``notices.channel``."""
    if policy.channel is NoticeChannel.SMTP:
        smtp = SmtpSettings(
            host=policy.smtp_host,
            port=policy.smtp_port,
            use_tls=policy.smtp_use_tls,
            username=policy.smtp_username,
            password=os.environ.get(policy.smtp_password_env, ""),
            timeout_seconds=policy.smtp_timeout_seconds,
        )
        return SmtpNotificationDispatcher(smtp, from_email=policy.from_address)
    return LoggingNotificationDispatcher()


class LedgerOrchestrator:
    """DI container for the debt ledger.

    Contract:
        - ``from_session_factory()`` wires every service from explicit
          dependencies (tests, embedding applications).
        - ``from_settings()`` wires them from the process-wide engine and
          the active configuration set.

    Non-goals:
        - Does NOT create the engine or tables; see debt_kernel.db.engine.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: LedgerSettings,
        clock: Clock | None = None,
        cache_backend: CacheBackend | None = None,
        dispatcher: NotificationDispatcher | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock or SystemClock()
        self._cache = DebtCache(
            cache_backend if cache_backend is not None else build_cache_backend(settings.cache, self._clock),
            ttl_seconds=settings.cache.ttl_seconds,
            key_prefix=settings.cache.key_prefix,
        )

        self._sync = DebtSyncService(
            session_factory,
            clock=self._clock,
            ledger_policy=settings.ledger,
            sync_policy=settings.sync,
            cache=self._cache,
            monotonic=monotonic,
        )
        self._batch = DebtBatchRunner(
            session_factory,
            self._sync,
            clock=self._clock,
            sync_policy=settings.sync,
            batch_policy=settings.batch,
            cache=self._cache,
        )
        self._auditor = IntegrityAuditor(session_factory, settings.ledger, clock=self._clock)
        self._reads = DebtReadService(
            session_factory,
            clock=self._clock,
            ledger_policy=settings.ledger,
            view_policy=settings.views,
            cache=self._cache,
        )
        self._dispatcher = dispatcher if dispatcher is not None else build_dispatcher(settings.notices)
        self._notices = DebtNoticeService(
            session_factory,
            self._dispatcher,
            clock=self._clock,
            ledger_policy=settings.ledger,
            notice_policy=settings.notices,
        )

        logger.debug(
            "ledger_orchestrator_wired",
            extra={
                "config_id": settings.config_id,
                "cache_backend": type(self._cache.backend).__name__,
                "dispatcher": type(self._dispatcher).__name__,
                "max_workers": settings.batch.max_workers,
            },
        )

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_session_factory(
        cls,
        session_factory: sessionmaker[Session],
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
        cache_backend: CacheBackend | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> LedgerOrchestrator:
        return cls(
            session_factory=session_factory,
            settings=settings if settings is not None else get_active_config(),
            clock=clock,
            cache_backend=cache_backend,
            dispatcher=dispatcher,
        )

    @classmethod
    def from_settings(
        cls,
        config_path: str | None = None,
        clock: Clock | None = None,
        cache_backend: CacheBackend | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> LedgerOrchestrator:
        """Wire against the engine set up by init_engine_from_url().

        Raises:
            RuntimeError: the engine has not been initialized.
        """
        return cls(
            session_factory=get_session_factory(),
            settings=get_active_config(config_path),
            clock=clock,
            cache_backend=cache_backend,
            dispatcher=dispatcher,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def cache(self) -> DebtCache:
        return self._cache

    @property
    def sync(self) -> DebtSyncService:
        return self._sync

    @property
    def batch(self) -> DebtBatchRunner:
        return self._batch

    @property
    def auditor(self) -> IntegrityAuditor:
        return self._auditor

    @property
    def reads(self) -> DebtReadService:
        return self._reads

    @property
    def notices(self) -> DebtNoticeService:
        return self._notices

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher
