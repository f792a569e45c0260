"""
PeriodLedgerStore -- insert-or-update of ledger period rows.

Responsibility:
    The only writer of DebtPeriod.  Upserts a (partner, year) row with
    freshly computed amounts, appends notes, and opens / closes a period
    against recomputation.

Invariants enforced:
    - One row per (partner, year): an existing row is updated in place.
    - Locked rows are never recomputed (PeriodLockedError).
    - Notes only grow; the same note is not appended twice in a row.
    - Amounts are stored unrounded.

Failure modes:
    - PeriodLockedError on upsert of a locked row.
    - PeriodNotFoundError on lock / unlock of a row that does not exist.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from debt_kernel.domain.partner import PartnerRef, PartnerRole
from debt_kernel.domain.period import period_label, year_end, year_start
from debt_kernel.domain.recurrence import OpeningMethod, PeriodMovements, append_note
from debt_kernel.exceptions import PeriodLockedError, PeriodNotFoundError
from debt_kernel.logging_config import get_logger
from debt_kernel.models.period import DebtPeriod
from debt_kernel.selectors.period_selector import partner_filter
from debt_kernel.services.base import SYSTEM_ACTOR_ID, BaseService

logger = get_logger("services.period_ledger_store")


class PeriodLedgerStore(BaseService):
    """Flush-only writer of DebtPeriod rows."""

    def find(self, partner: PartnerRef, year: int) -> DebtPeriod | None:
        return self.session.scalars(
            select(DebtPeriod).where(
                partner_filter(partner),
                DebtPeriod.period_name == period_label(year),
            )
        ).first()

    def upsert(
        self,
        partner: PartnerRef,
        year: int,
        *,
        opening: Decimal,
        movements: PeriodMovements,
        closing: Decimal,
        method: OpeningMethod,
        note: str | None = None,
        actor_id: UUID | None = None,
        enforce_lock: bool = True,
    ) -> DebtPeriod:
        """
        Write the computed period for (partner, year).

        Raises:
            PeriodLockedError: the row exists, is locked, and enforce_lock
                is set.
        """
        actor = actor_id or SYSTEM_ACTOR_ID
        label = period_label(year)
        row = self.find(partner, year)

        if row is None:
            row = DebtPeriod(
                customer_id=partner.id if partner.role is PartnerRole.CUSTOMER else None,
                supplier_id=partner.id if partner.role is PartnerRole.SUPPLIER else None,
                period_name=label,
                start_time=year_start(year),
                end_time=year_end(year),
                is_locked=False,
                created_by_id=actor,
            )
            self.session.add(row)
            created = True
        else:
            if row.is_locked and enforce_lock:
                raise PeriodLockedError(partner.key, label, "recompute")
            row.updated_by_id = actor
            created = False

        row.opening_balance = opening
        row.increasing_amount = movements.increase
        row.decreasing_amount = movements.decrease
        row.return_amount = movements.returns
        row.adjustment_amount = movements.adjustments
        row.closing_balance = closing
        row.opening_method = method.value
        row.notes = append_note(row.notes, note)

        self.session.flush()

        logger.debug(
            "debt_period_upserted",
            extra={
                "partner_key": partner.key,
                "period_name": label,
                "row_created": created,
                "opening_method": method.value,
                "closing_balance": str(closing),
            },
        )
        return row

    def require(self, partner: PartnerRef, year: int) -> DebtPeriod:
        row = self.find(partner, year)
        if row is None:
            raise PeriodNotFoundError(partner.key, period_label(year))
        return row

    def lock(self, partner: PartnerRef, year: int, actor_id: UUID | None = None) -> DebtPeriod:
        """Close the period against recomputation.  Locking twice is a no-op."""
        row = self.require(partner, year)
        if not row.is_locked:
            row.is_locked = True
            row.locked_at = self.clock.now()
            row.updated_by_id = actor_id or SYSTEM_ACTOR_ID
            self.session.flush()
            logger.info(
                "debt_period_locked",
                extra={"partner_key": partner.key, "period_name": row.period_name},
            )
        return row

    def unlock(self, partner: PartnerRef, year: int, actor_id: UUID | None = None) -> DebtPeriod:
        row = self.require(partner, year)
        if row.is_locked:
            row.is_locked = False
            row.locked_at = None
            row.updated_by_id = actor_id or SYSTEM_ACTOR_ID
            self.session.flush()
            logger.info(
                "debt_period_unlocked",
                extra={"partner_key": partner.key, "period_name": row.period_name},
            )
        return row
