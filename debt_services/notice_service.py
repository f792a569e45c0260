"""
DebtNoticeService -- decides whether and with which numbers to notify.

Two kinds of notice:

- PERIOD_REPORT (a year is given): reconciliation statement with that
  period's opening, movements and closing.  Zeroes when the period was
  never synced.
- CURRENT_REMINDER (no year): reminder of the partner's live balance, as
  last written by a current-year sync.

Delivery is the injected NotificationDispatcher's job.  Dispatcher errors
propagate; nothing is recorded as sent unless send() returned.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from debt_config.schema import LedgerPolicy, NoticePolicy
from debt_kernel.db.types import present_money, to_decimal
from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.domain.dtos import NoticeKind, NoticeResult
from debt_kernel.domain.partner import PartnerRef
from debt_kernel.domain.period import period_label, validate_year
from debt_kernel.domain.recurrence import ZERO, debt_status
from debt_kernel.exceptions import MissingContactAddressError
from debt_kernel.logging_config import LogContext, get_logger
from debt_kernel.selectors.period_selector import LedgerRow, PeriodSelector
from debt_kernel.services.partner_directory import PartnerDirectory
from debt_services.notifications import NotificationDispatcher

logger = get_logger("services.notice_service")


class DebtNoticeService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        dispatcher: NotificationDispatcher,
        clock: Clock | None = None,
        ledger_policy: LedgerPolicy | None = None,
        notice_policy: NoticePolicy | None = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()
        self._ledger_policy = ledger_policy or LedgerPolicy()
        self._notice_policy = notice_policy or NoticePolicy()

    def send_debt_notice(
        self,
        partner: PartnerRef,
        year: int | str | None = None,
        custom_email: str | None = None,
        message: str | None = None,
        cc: Sequence[str] = (),
        actor_id: UUID | None = None,
    ) -> NoticeResult:
        """
        Build and dispatch a debt notice for one partner.

        Raises:
            InvalidPeriodError: ``year`` is malformed.
            PartnerNotFoundError: no such customer / supplier.
            MissingContactAddressError: neither ``custom_email`` nor the
                partner's email is set.
        """
        target = validate_year(year) if year is not None else None

        with self._session_factory() as session:
            record = PartnerDirectory(session, self._clock).require(partner)
            name, code = record.name, record.code
            live_balance = to_decimal(record.live_balance)
            default_email = record.email
            row = PeriodSelector(session).get(partner, target) if target is not None else None

        to_email = (custom_email or "").strip() or default_email
        if not to_email:
            raise MissingContactAddressError(partner.key, name)

        policy = self._notice_policy
        if target is not None:
            kind = NoticeKind.PERIOD_REPORT
            subject = policy.period_subject.format(prefix=policy.subject_prefix, year=target, code=code)
            body = self._period_body(name, code, target, row, message)
        else:
            kind = NoticeKind.CURRENT_REMINDER
            subject = policy.reminder_subject.format(prefix=policy.subject_prefix, code=code)
            body = self._reminder_body(name, code, live_balance, message)

        cc = tuple(address for address in cc if address)
        self._dispatcher.send(to_email, subject, body, cc)

        with LogContext.bind(
            partner_key=partner.key,
            actor_id=str(actor_id) if actor_id else None,
        ):
            logger.info(
                "debt_notice_sent",
                extra={
                    "notice_kind": kind.value,
                    "recipient": to_email,
                    "cc_count": len(cc),
                    "notice_year": target,
                },
            )

        return NoticeResult(
            success=True,
            sent_to=to_email,
            kind=kind,
            subject=subject,
            message=f"Notice sent to {to_email}",
            cc=cc,
        )

    def _money(self, value: Decimal) -> str:
        return present_money(value, self._ledger_policy.presentation_places)

    def _period_body(
        self,
        name: str,
        code: str,
        year: int,
        row: LedgerRow | None,
        message: str | None,
    ) -> str:
        if row is None:
            opening = increase = decrease = returns = adjustments = closing = ZERO
        else:
            opening = row.opening_balance
            increase = row.increasing_amount
            decrease = row.decreasing_amount
            returns = row.return_amount
            adjustments = row.adjustment_amount
            closing = row.closing_balance

        lines = [
            f"Dear {name} ({code}),",
            "",
            f"Debt reconciliation statement for {period_label(year)}:",
            f"  Opening balance:   {self._money(opening)}",
            f"  Increase:          {self._money(increase)}",
            f"  Payments:          {self._money(decrease)}",
            f"  Returns:           {self._money(returns)}",
            f"  Adjustments:       {self._money(adjustments)}",
            f"  Closing balance:   {self._money(closing)}",
            f"  Status:            {debt_status(closing, self._ledger_policy.paid_threshold).value}",
        ]
        return self._finish(lines, message)

    def _reminder_body(
        self,
        name: str,
        code: str,
        balance: Decimal,
        message: str | None,
    ) -> str:
        lines = [
            f"Dear {name} ({code}),",
            "",
            f"Your current outstanding balance is {self._money(balance)}.",
        ]
        return self._finish(lines, message)

    @staticmethod
    def _finish(lines: list[str], message: str | None) -> str:
        if message and message.strip():
            lines.extend(["", message.strip()])
        lines.extend(["", "Please contact us if these figures do not match your records."])
        return "\n".join(lines)
