"""
DebtBatchRunner -- per-partner syncs over every active partner of a year.

Contract:
    sync_full_all(year) / sync_snap_all(year) find the partners with at
    least one increase or decrease event in the year, run the matching
    per-partner sync for each, and return a BatchSyncSummary.

Architecture: debt_batch.  Calls DebtSyncService; each partner's sync is
    its own unit of work, so one partner's failure never rolls back
    another's commit.

Invariants enforced:
    - Exactly the active-partner set is processed; succeeded + failed
      equals its size.
    - A per-partner failure (any Exception) is logged with the partner key
      and recorded; the remaining partners still run.
    - Sequential by default.  With batch.max_workers > 1, partners run on a
      bounded thread pool; the years of one partner are never split across
      workers.
    - The whole read-view cache is invalidated once the batch finishes.
"""

from __future__ import annotations

import contextvars
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from debt_config.schema import BatchPolicy, SyncPolicy
from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.domain.partner import PartnerRef
from debt_kernel.domain.period import period_label, resolve_year
from debt_kernel.logging_config import LogContext, get_logger
from debt_kernel.selectors.transaction_selector import TransactionSelector
from debt_services import observability
from debt_services.cache import DebtCache
from debt_services.sync_orchestrator import DebtSyncService

from debt_batch.domain.types import BatchFailure, BatchMode, BatchSyncSummary

logger = get_logger("batch.runner")


class DebtBatchRunner:
    """Runs one sync strategy across every active partner of a year.

    Non-goals:
        - Does NOT schedule itself; callers trigger runs.
        - Does NOT retry failed partners.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        sync_service: DebtSyncService,
        clock: Clock | None = None,
        sync_policy: SyncPolicy | None = None,
        batch_policy: BatchPolicy | None = None,
        cache: DebtCache | None = None,
    ):
        self._session_factory = session_factory
        self._sync = sync_service
        self._clock = clock or SystemClock()
        self._sync_policy = sync_policy or SyncPolicy()
        self._batch_policy = batch_policy or BatchPolicy()
        self._cache = cache

    def active_partners(self, year: int) -> tuple[PartnerRef, ...]:
        with self._session_factory() as session:
            return TransactionSelector(session).active_partners(year)

    def sync_full_all(self, year: int | str | None = None) -> BatchSyncSummary:
        target = resolve_year(year, self._clock)
        note = self._sync_policy.full_batch_note.format(year=target)
        return self._run(
            BatchMode.FULL_ALL,
            target,
            lambda partner: self._sync.sync_full(partner, target, notes=note),
        )

    def sync_snap_all(self, year: int | str | None = None) -> BatchSyncSummary:
        target = resolve_year(year, self._clock)
        note = self._sync_policy.snapshot_batch_note.format(year=target)
        return self._run(
            BatchMode.SNAP_ALL,
            target,
            lambda partner: self._sync.sync_snap(partner, target, notes=note),
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _run(
        self,
        mode: BatchMode,
        year: int,
        sync_one: Callable[[PartnerRef], object],
    ) -> BatchSyncSummary:
        start_time = time.monotonic()
        batch_id = str(uuid4())

        with LogContext.bind(batch_id=batch_id, period_name=period_label(year)):
            partners = self.active_partners(year)
            logger.info(
                "debt_batch_started",
                extra={
                    "mode": mode.value,
                    "year": year,
                    "partner_count": len(partners),
                    "max_workers": self._batch_policy.max_workers,
                },
            )

            def run_one(partner: PartnerRef) -> BatchFailure | None:
                try:
                    sync_one(partner)
                except Exception as exc:
                    failure = BatchFailure(
                        partner=partner,
                        error_code=str(getattr(exc, "code", None) or type(exc).__name__),
                        error_message=str(exc),
                    )
                    logger.warning(
                        "debt_batch_item_failed",
                        extra={
                            "partner_key": partner.key,
                            "error_code": failure.error_code,
                            "error_message": failure.error_message,
                        },
                    )
                    return failure
                return None

            workers = self._batch_policy.max_workers
            if workers > 1 and len(partners) > 1:
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="debt-batch") as pool:
                    futures = [
                        pool.submit(contextvars.copy_context().run, run_one, partner)
                        for partner in partners
                    ]
                    outcomes = [future.result() for future in futures]
            else:
                outcomes = [run_one(partner) for partner in partners]

            failures = tuple(outcome for outcome in outcomes if outcome is not None)

            cache_cleared = True
            if self._cache is not None:
                try:
                    self._cache.invalidate_all(reason=mode.value)
                except Exception:
                    cache_cleared = False
                    logger.error(
                        "debt_batch_cache_invalidation_failed",
                        exc_info=True,
                        extra={"mode": mode.value, "year": year},
                    )

            duration = time.monotonic() - start_time
            summary = BatchSyncSummary(
                year=year,
                mode=mode,
                total_checked=len(partners),
                succeeded=len(partners) - len(failures),
                failed=len(failures),
                duration_seconds=round(duration, 3),
                failures=failures,
                batch_id=batch_id,
                cache_cleared=cache_cleared,
            )

            logger.info(
                "debt_batch_completed",
                extra={
                    "mode": mode.value,
                    "year": year,
                    "total_checked": summary.total_checked,
                    "succeeded": summary.succeeded,
                    "failed": summary.failed,
                    "cache_cleared": cache_cleared,
                },
            )
            observability.log_batch_completed(
                mode=mode.value,
                year=year,
                total_checked=summary.total_checked,
                succeeded=summary.succeeded,
                failed=summary.failed,
                duration_ms=duration * 1000,
            )
        return summary
