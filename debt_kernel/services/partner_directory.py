"""
PartnerDirectory -- read/write access to customer and supplier records.

The ledger touches the directory for three things only: checking that a
partner exists, re-assigning the responsible user, and refreshing the
denormalized live balance after a current-year sync.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from debt_kernel.domain.partner import PartnerRef, PartnerRole
from debt_kernel.exceptions import PartnerNotFoundError
from debt_kernel.logging_config import get_logger
from debt_kernel.models.partner import Customer, Supplier
from debt_kernel.services.base import BaseService

logger = get_logger("services.partner_directory")


def partner_model(partner: PartnerRef) -> type[Customer] | type[Supplier]:
    if partner.role is PartnerRole.CUSTOMER:
        return Customer
    return Supplier


class PartnerDirectory(BaseService):
    """Flush-only writer over Customer / Supplier rows."""

    def get(self, partner: PartnerRef) -> Customer | Supplier | None:
        return self.session.get(partner_model(partner), partner.id)

    def require(self, partner: PartnerRef) -> Customer | Supplier:
        """
        Load the partner or fail.

        Raises:
            PartnerNotFoundError: no such customer / supplier.
        """
        record = self.get(partner)
        if record is None:
            raise PartnerNotFoundError(partner.key)
        return record

    def assign_user(self, partner: PartnerRef, user_id: UUID) -> None:
        record = self.require(partner)
        if record.assigned_user_id != user_id:
            record.assigned_user_id = user_id
            self.session.flush()
            logger.info(
                "partner_user_assigned",
                extra={"partner_key": partner.key, "assigned_user_id": str(user_id)},
            )

    def record_live_balance(self, partner: PartnerRef, closing: Decimal) -> None:
        """Write the latest closing into the partner's live balance field."""
        record = self.require(partner)
        now: datetime = self.clock.now()
        if isinstance(record, Customer):
            record.current_debt = closing
            record.debt_updated_at = now
        else:
            record.total_payable = closing
            record.payable_updated_at = now
        self.session.flush()
