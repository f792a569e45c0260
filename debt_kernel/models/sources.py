"""
Module: debt_kernel.models.sources
Responsibility: ORM shape of the source events the ledger is derived from.
    These tables are owned by the order, purchasing and cash modules; the
    ledger only reads them.
Architecture position: Kernel > Models.  May import from db/ only.

Event kinds per partner role:

    kind        | customer           | supplier
    ------------|--------------------|-------------------
    increase    | SalesOrder         | PurchaseOrder
    decrease    | PaymentReceipt     | PaymentVoucher
    return      | ReturnNote         | ReturnNote
    adjustment  | BalanceAdjustment  | BalanceAdjustment

Orders with status ``cancelled`` never count.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from debt_kernel.db.base import Base, UUIDString
from debt_kernel.db.types import Money

_EXACTLY_ONE_PARTNER = "(customer_id IS NULL) <> (supplier_id IS NULL)"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SalesOrder(Base):
    __tablename__ = "sales_orders"

    __table_args__ = (
        Index("idx_sales_order_customer_date", "customer_id", "order_date"),
    )

    order_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=False,
    )
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    order_status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, nullable=False,
    )
    total_amount: Mapped[Money] = mapped_column(nullable=False)

    lines: Mapped[list["SalesOrderLine"]] = relationship(
        back_populates="order",
        order_by="SalesOrderLine.line_no",
        cascade="all, delete-orphan",
    )


class SalesOrderLine(Base):
    __tablename__ = "sales_order_lines"

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_orders.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(nullable=False, default=1)
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Money] = mapped_column(nullable=False)
    line_total: Mapped[Money] = mapped_column(nullable=False)

    order: Mapped[SalesOrder] = relationship(back_populates="lines")


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    __table_args__ = (
        Index("idx_purchase_order_supplier_date", "supplier_id", "order_date"),
    )

    po_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=False,
    )
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, nullable=False,
    )
    total_amount: Mapped[Money] = mapped_column(nullable=False)

    lines: Mapped[list["PurchaseOrderLine"]] = relationship(
        back_populates="order",
        order_by="PurchaseOrderLine.line_no",
        cascade="all, delete-orphan",
    )


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_orders.id"), nullable=False, index=True,
    )
    line_no: Mapped[int] = mapped_column(nullable=False, default=1)
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Money] = mapped_column(nullable=False)
    line_total: Mapped[Money] = mapped_column(nullable=False)

    order: Mapped[PurchaseOrder] = relationship(back_populates="lines")


class PaymentReceipt(Base):
    """Money received from a customer."""

    __tablename__ = "payment_receipts"

    __table_args__ = (
        Index("idx_receipt_customer_date", "customer_id", "receipt_date"),
    )

    receipt_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=False,
    )
    receipt_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class PaymentVoucher(Base):
    """Money paid out to a supplier."""

    __tablename__ = "payment_vouchers"

    __table_args__ = (
        Index("idx_voucher_supplier_date", "supplier_id", "payment_date"),
    )

    voucher_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=False,
    )
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class ReturnNote(Base):
    """Goods returned by a customer or sent back to a supplier."""

    __tablename__ = "return_notes"

    __table_args__ = (
        CheckConstraint(_EXACTLY_ONE_PARTNER, name="ck_return_note_one_partner"),
        Index("idx_return_customer_date", "customer_id", "return_date"),
        Index("idx_return_supplier_date", "supplier_id", "return_date"),
    )

    return_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=True,
    )
    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=True,
    )
    return_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class BalanceAdjustment(Base):
    """Manual decrease-side correction (write-off, discount after the fact)."""

    __tablename__ = "balance_adjustments"

    __table_args__ = (
        CheckConstraint(_EXACTLY_ONE_PARTNER, name="ck_adjustment_one_partner"),
        Index("idx_adjustment_customer_date", "customer_id", "adjustment_date"),
        Index("idx_adjustment_supplier_date", "supplier_id", "adjustment_date"),
    )

    adjustment_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=True,
    )
    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=True,
    )
    adjustment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
