"""
Module: debt_kernel.models.partner
Responsibility: ORM persistence for the partner directory -- customers and
    suppliers, including their denormalized live balance.
Architecture position: Kernel > Models.  May import from db/ and domain/partner.

Invariants enforced:
    - The live balance (Customer.current_debt / Supplier.total_payable) is a
      cache of the latest ledger closing.  Only a sync for the current
      calendar year or later writes it (PartnerDirectory.record_live_balance).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from debt_kernel.db.base import Base, UUIDString
from debt_kernel.db.types import Money
from debt_kernel.domain.partner import CustomerRef, SupplierRef


class Customer(Base):
    """A customer: owes the business for sales orders."""

    __tablename__ = "customers"

    __table_args__ = (
        UniqueConstraint("code", name="uq_customer_code"),
        Index("idx_customer_assigned_user", "assigned_user_id"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    province: Mapped[str | None] = mapped_column(String(100), nullable=True)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Responsible salesperson
    assigned_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    current_debt: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    debt_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def partner_ref(self) -> CustomerRef:
        return CustomerRef(self.id)

    @property
    def live_balance(self) -> Decimal:
        return self.current_debt

    def __repr__(self) -> str:
        return f"<Customer {self.code}: {self.name}>"


class Supplier(Base):
    """A supplier: the business owes it for purchase orders."""

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("code", name="uq_supplier_code"),
        Index("idx_supplier_assigned_user", "assigned_user_id"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Responsible purchasing officer
    assigned_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    total_payable: Mapped[Money] = mapped_column(default=Decimal("0"), nullable=False)
    payable_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def partner_ref(self) -> SupplierRef:
        return SupplierRef(self.id)

    @property
    def live_balance(self) -> Decimal:
        return self.total_payable

    def __repr__(self) -> str:
        return f"<Supplier {self.code}: {self.name}>"
