"""ORM models for the debt ledger."""

from debt_kernel.models.partner import Customer, Supplier
from debt_kernel.models.period import DebtPeriod
from debt_kernel.models.sources import (
    BalanceAdjustment,
    OrderStatus,
    PaymentReceipt,
    PaymentVoucher,
    PurchaseOrder,
    PurchaseOrderLine,
    ReturnNote,
    SalesOrder,
    SalesOrderLine,
)

__all__ = [
    "Customer",
    "Supplier",
    "DebtPeriod",
    "OrderStatus",
    "SalesOrder",
    "SalesOrderLine",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PaymentReceipt",
    "PaymentVoucher",
    "ReturnNote",
    "BalanceAdjustment",
]
