"""
DebtSyncService -- per-partner ledger syncs.

Responsibility:
    Runs the two sync strategies for one partner, each as one atomic unit
    of work, and invalidates cached read views after the commit:

    - sync_full(): walk every year from the partner's first activity to
      the target year, chaining each closing into the next opening.
    - sync_snap(): recompute only the target year from the stored
      prior-year closing.
    - lock_period() / unlock_period(): close a period against
      recomputation and re-open it.

Architecture position:
    Services.  Owns transaction boundaries through
    debt_kernel.db.unit_of_work; everything below it flushes only.

Invariants enforced:
    - The year is validated before any read; an unknown partner fails
      before any write.
    - All years of a full walk commit together or not at all, including
      on timeout.
    - Re-running a sync over unchanged source data leaves the period
      amounts and notes unchanged.
    - Cache invalidation happens only after a successful commit.

Failure modes:
    - InvalidPartnerReferenceError / InvalidPeriodError (validation).
    - PartnerNotFoundError.
    - PeriodLockedError when the target year is locked.
    - SyncTimeoutError when the unit of work outlives its deadline.
    - Data-store errors propagate unchanged.
"""

from __future__ import annotations

import time
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from debt_config.schema import LedgerPolicy, SyncPolicy
from debt_kernel.db.unit_of_work import UnitOfWork, unit_of_work
from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.domain.dtos import FullSyncResult, PeriodResult, SyncMode
from debt_kernel.domain.partner import CustomerRef, PartnerRef, SupplierRef
from debt_kernel.domain.period import period_label, resolve_year
from debt_kernel.domain.recurrence import OpeningMethod, combine_notes
from debt_kernel.exceptions import InvalidPartnerReferenceError
from debt_kernel.logging_config import LogContext, get_logger
from debt_services import observability
from debt_services.cache import DebtCache
from debt_services.recurrence_engine import BalanceRecurrenceEngine

logger = get_logger("services.sync_orchestrator")


def _require_partner_ref(partner: object) -> PartnerRef:
    if not isinstance(partner, (CustomerRef, SupplierRef)):
        raise InvalidPartnerReferenceError(
            None, None, reason=f"expected a CustomerRef or SupplierRef, got {partner!r}",
        )
    return partner


class DebtSyncService:
    """
    Sync entry points for one partner at a time.

    Args:
        session_factory: Opens the session of each unit of work.
        clock: Decides the default year and the live-balance cut-off.
        ledger_policy / sync_policy: Sections of LedgerSettings.
        cache: Read-view cache to invalidate after commits (optional).
        monotonic: Time source for unit-of-work deadlines.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        ledger_policy: LedgerPolicy | None = None,
        sync_policy: SyncPolicy | None = None,
        cache: DebtCache | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._ledger_policy = ledger_policy or LedgerPolicy()
        self._sync_policy = sync_policy or SyncPolicy()
        self._cache = cache
        self._monotonic = monotonic

    # ------------------------------------------------------------------
    # Full strategy
    # ------------------------------------------------------------------

    def sync_full(
        self,
        partner: PartnerRef,
        year: int | str | None = None,
        notes: str | None = None,
        assigned_user_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> FullSyncResult:
        """
        Recompute every year from first activity through ``year``.

        With no activity at all, or activity only after ``year``, just
        ``year`` is computed.  Non-target years get the configured history
        note; the target year gets ``notes``.

        A locked historical year is kept as stored and its closing carried
        forward.  A locked target year raises PeriodLockedError.
        """
        partner = _require_partner_ref(partner)
        target = resolve_year(year, self._clock)
        started = time.perf_counter()

        with LogContext.bind(
            partner_key=partner.key,
            period_name=period_label(target),
            actor_id=str(actor_id) if actor_id else None,
        ):
            with self._unit_of_work("sync_full", self._sync_policy.full_timeout_seconds) as uow:
                engine = self._prepare(uow, partner, assigned_user_id)

                first_year = engine.transactions.first_activity_year(partner)
                start_year = min(first_year, target) if first_year is not None else target

                opening = engine.full_opening(partner, start_year)
                method = OpeningMethod.HISTORY_AGGREGATE
                periods: list[PeriodResult] = []

                for current in range(start_year, target + 1):
                    uow.check_deadline()
                    result = None
                    if current != target:
                        result = engine.locked_result(partner, current)
                    if result is None:
                        note = (
                            notes if current == target
                            else self._sync_policy.full_history_note.format(year=current)
                        )
                        result = engine.compute_and_persist(
                            partner, current, opening, method, note, actor_id,
                        )
                    else:
                        logger.info(
                            "debt_sync_locked_year_carried",
                            extra={"locked_period": result.period_name},
                        )
                    periods.append(result)
                    opening = result.closing_balance
                    method = OpeningMethod.CARRIED_FORWARD

            outcome = FullSyncResult(
                partner=partner,
                year=target,
                first_year=start_year,
                periods=tuple(periods),
            )
            self._after_commit(partner, SyncMode.FULL)

            duration_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "debt_sync_full_completed",
                extra={
                    "first_year": start_year,
                    "years_synced": outcome.years_synced,
                    "closing_balance": str(outcome.final_closing),
                },
            )
            observability.log_sync_completed(
                mode=SyncMode.FULL.value,
                partner_key=partner.key,
                period_name=period_label(target),
                duration_ms=duration_ms,
                years_synced=outcome.years_synced,
            )
        return outcome

    # ------------------------------------------------------------------
    # Snapshot strategy
    # ------------------------------------------------------------------

    def sync_snap(
        self,
        partner: PartnerRef,
        year: int | str | None = None,
        notes: str | None = None,
        assigned_user_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> PeriodResult:
        """
        Recompute ``year`` from the stored prior-year closing.

        Falls back to the full history aggregate (and says so in the notes)
        when the prior year was never synced.
        """
        partner = _require_partner_ref(partner)
        target = resolve_year(year, self._clock)
        started = time.perf_counter()

        with LogContext.bind(
            partner_key=partner.key,
            period_name=period_label(target),
            actor_id=str(actor_id) if actor_id else None,
        ):
            with self._unit_of_work("sync_snap", self._sync_policy.snapshot_timeout_seconds) as uow:
                engine = self._prepare(uow, partner, assigned_user_id)
                opening = engine.snapshot_opening(partner, target)
                result = engine.compute_and_persist(
                    partner,
                    target,
                    opening.amount,
                    opening.method,
                    combine_notes(notes, opening.note),
                    actor_id,
                )

            self._after_commit(partner, SyncMode.SNAPSHOT)

            duration_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "debt_sync_snap_completed",
                extra={
                    "opening_method": result.method.value,
                    "closing_balance": str(result.closing_balance),
                    "debt_status": result.status.value,
                },
            )
            observability.log_sync_completed(
                mode=SyncMode.SNAPSHOT.value,
                partner_key=partner.key,
                period_name=result.period_name,
                duration_ms=duration_ms,
                opening_method=result.method.value,
            )
        return result

    # ------------------------------------------------------------------
    # Period locking
    # ------------------------------------------------------------------

    def lock_period(
        self,
        partner: PartnerRef,
        year: int | str,
        actor_id: UUID | None = None,
    ) -> PeriodResult:
        """
        Close (partner, year) against recomputation.

        Raises:
            PeriodNotFoundError: the period was never synced.
        """
        return self._set_lock(partner, year, actor_id, locked=True)

    def unlock_period(
        self,
        partner: PartnerRef,
        year: int | str,
        actor_id: UUID | None = None,
    ) -> PeriodResult:
        return self._set_lock(partner, year, actor_id, locked=False)

    def _set_lock(
        self,
        partner: PartnerRef,
        year: int | str,
        actor_id: UUID | None,
        locked: bool,
    ) -> PeriodResult:
        partner = _require_partner_ref(partner)
        target = resolve_year(year, self._clock)
        operation = "lock_period" if locked else "unlock_period"

        with self._unit_of_work(operation, self._sync_policy.snapshot_timeout_seconds) as uow:
            engine = self._prepare(uow, partner, None)
            if locked:
                row = engine.store.lock(partner, target, actor_id)
            else:
                row = engine.store.unlock(partner, target, actor_id)
            result = engine.to_result(row, partner)

        if self._cache is not None:
            self._cache.invalidate_partner(partner, reason=operation)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _unit_of_work(self, operation: str, timeout_seconds: float):
        return unit_of_work(
            self._session_factory,
            operation=operation,
            timeout_seconds=timeout_seconds,
            monotonic=self._monotonic,
        )

    def _prepare(
        self,
        uow: UnitOfWork,
        partner: PartnerRef,
        assigned_user_id: UUID | None,
    ) -> BalanceRecurrenceEngine:
        engine = BalanceRecurrenceEngine(uow.session, self._clock, self._ledger_policy)
        engine.directory.require(partner)
        if assigned_user_id is not None:
            engine.directory.assign_user(partner, assigned_user_id)
        return engine

    def _after_commit(self, partner: PartnerRef, mode: SyncMode) -> None:
        if self._cache is not None:
            self._cache.invalidate_partner(partner, reason=f"sync_{mode.value}")
