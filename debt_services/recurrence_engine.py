"""
BalanceRecurrenceEngine -- opening strategies and the per-period write path.

Responsibility:
    Computes a period's opening balance by one of two strategies and
    persists the resulting period:

    - Full: aggregate every event strictly before the year starts.  A full
      walk calls this once, for its first year, and then carries each
      freshly computed closing into the next year.
    - Snapshot: trust the stored prior-year closing.  When no prior-year
      row exists, fall back to the full aggregate and annotate the period
      with an ``[AGGREGATE_FALLBACK]`` note so audits can explain it.

    compute_and_persist() aggregates the year's movements, derives the
    closing, upserts the ledger row, and refreshes the partner's live
    balance when the year is the current calendar year or later.

Architecture position:
    Services.  Built per unit of work on the unit's session; it never
    commits.

Invariants enforced:
    - closing = opening + increase - (decrease + returns + adjustments),
      unrounded.
    - Historical backfills never overwrite the live balance.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from debt_config.schema import LedgerPolicy, LockPolicy
from debt_kernel.db.types import to_decimal
from debt_kernel.domain.clock import Clock
from debt_kernel.domain.dtos import PeriodResult
from debt_kernel.domain.partner import PartnerRef
from debt_kernel.domain.period import period_label, year_start
from debt_kernel.domain.recurrence import (
    ZERO,
    OpeningMethod,
    compute_closing,
    debt_status,
    fallback_note,
)
from debt_kernel.logging_config import get_logger
from debt_kernel.models.period import DebtPeriod
from debt_kernel.selectors.transaction_selector import TransactionSelector
from debt_kernel.services.partner_directory import PartnerDirectory
from debt_kernel.services.period_ledger_store import PeriodLedgerStore

logger = get_logger("services.recurrence_engine")


@dataclass(frozen=True)
class Opening:
    """An opening balance and how it was obtained."""

    amount: Decimal
    method: OpeningMethod
    note: str | None = None


class BalanceRecurrenceEngine:
    """Opening strategies plus the write path of one period."""

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: LedgerPolicy | None = None,
    ):
        self.clock = clock
        self.policy = policy or LedgerPolicy()
        self.transactions = TransactionSelector(session)
        self.store = PeriodLedgerStore(session, clock)
        self.directory = PartnerDirectory(session, clock)

    # ------------------------------------------------------------------
    # Opening strategies
    # ------------------------------------------------------------------

    def full_opening(self, partner: PartnerRef, year: int) -> Decimal:
        """Net of every event before Jan 1 of ``year``."""
        history = self.transactions.history_movements(partner, year_start(year))
        return compute_closing(ZERO, history)

    def snapshot_opening(self, partner: PartnerRef, year: int) -> Opening:
        previous = self.store.find(partner, year - 1)
        if previous is not None:
            return Opening(to_decimal(previous.closing_balance), OpeningMethod.SNAPSHOT)

        logger.info(
            "debt_snapshot_fallback",
            extra={"partner_key": partner.key, "missing_period": period_label(year - 1)},
        )
        return Opening(
            self.full_opening(partner, year),
            OpeningMethod.AGGREGATE_FALLBACK,
            fallback_note(period_label(year - 1)),
        )

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    @property
    def rejects_locked(self) -> bool:
        return self.policy.lock_policy is LockPolicy.REJECT

    def compute_and_persist(
        self,
        partner: PartnerRef,
        year: int,
        opening: Decimal,
        method: OpeningMethod,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> PeriodResult:
        """
        Aggregate ``year``, compute its closing and upsert the ledger row.

        Raises:
            PeriodLockedError: the row is locked and the lock policy rejects
                recomputation.
        """
        movements = self.transactions.period_movements(partner, year)
        closing = compute_closing(opening, movements)

        row = self.store.upsert(
            partner,
            year,
            opening=opening,
            movements=movements,
            closing=closing,
            method=method,
            note=notes,
            actor_id=actor_id,
            enforce_lock=self.rejects_locked,
        )

        if year >= self.clock.current_year():
            self.directory.record_live_balance(partner, closing)

        return self.to_result(row, partner)

    def locked_result(self, partner: PartnerRef, year: int) -> PeriodResult | None:
        """The stored period if it is locked and locks are enforced, else None."""
        if not self.rejects_locked:
            return None
        row = self.store.find(partner, year)
        if row is None or not row.is_locked:
            return None
        return self.to_result(row, partner)

    def to_result(self, row: DebtPeriod, partner: PartnerRef) -> PeriodResult:
        closing = to_decimal(row.closing_balance)
        return PeriodResult(
            partner=partner,
            period_name=row.period_name,
            opening_balance=to_decimal(row.opening_balance),
            increasing_amount=to_decimal(row.increasing_amount),
            decreasing_amount=to_decimal(row.decreasing_amount),
            return_amount=to_decimal(row.return_amount),
            adjustment_amount=to_decimal(row.adjustment_amount),
            closing_balance=closing,
            status=debt_status(closing, self.policy.paid_threshold),
            method=OpeningMethod(row.opening_method),
            notes=row.notes,
            is_locked=row.is_locked,
            period_id=row.id,
        )
