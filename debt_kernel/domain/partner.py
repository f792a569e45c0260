"""
Partner references -- who a ledger line belongs to.

A ledger line belongs to exactly one customer or exactly one supplier.
PartnerRef makes that a type: a CustomerRef or a SupplierRef, never both
and never neither.  The wire shape (two optional ids) is converted once, at
the boundary, by partner_ref_from_ids().
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar
from uuid import UUID

from debt_kernel.exceptions import InvalidPartnerReferenceError


class PartnerRole(str, Enum):
    """Which side of the business the partner sits on."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"


@dataclass(frozen=True)
class CustomerRef:
    """A customer: increases are sales orders, decreases are receipts."""

    id: UUID

    role: ClassVar[PartnerRole] = PartnerRole.CUSTOMER
    prefix: ClassVar[str] = "C"

    @property
    def key(self) -> str:
        return f"{self.prefix}-{self.id}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class SupplierRef:
    """A supplier: increases are purchase orders, decreases are vouchers."""

    id: UUID

    role: ClassVar[PartnerRole] = PartnerRole.SUPPLIER
    prefix: ClassVar[str] = "S"

    @property
    def key(self) -> str:
        return f"{self.prefix}-{self.id}"

    def __str__(self) -> str:
        return self.key


PartnerRef = CustomerRef | SupplierRef


def _coerce_id(value: object, customer_id: object, supplier_id: object) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidPartnerReferenceError(
            customer_id, supplier_id, reason=f"not a valid partner id: {value!r}"
        ) from None


def partner_ref_from_ids(
    customer_id: object = None,
    supplier_id: object = None,
) -> PartnerRef:
    """
    Build a PartnerRef from the two optional ids callers send.

    Raises:
        InvalidPartnerReferenceError: neither or both ids were given, or the
            given id is not a UUID.
    """
    if (customer_id is None) == (supplier_id is None):
        raise InvalidPartnerReferenceError(customer_id, supplier_id)
    if customer_id is not None:
        return CustomerRef(_coerce_id(customer_id, customer_id, supplier_id))
    return SupplierRef(_coerce_id(supplier_id, customer_id, supplier_id))


def partner_ref_from_key(key: str) -> PartnerRef:
    """
    Parse a ``C-<uuid>`` / ``S-<uuid>`` key back into a PartnerRef.

    Raises:
        InvalidPartnerReferenceError: unknown prefix or malformed id.
    """
    prefix, sep, raw_id = key.partition("-")
    if not sep:
        raise InvalidPartnerReferenceError(None, None, reason=f"malformed partner key {key!r}")
    if prefix == CustomerRef.prefix:
        return partner_ref_from_ids(customer_id=raw_id)
    if prefix == SupplierRef.prefix:
        return partner_ref_from_ids(supplier_id=raw_id)
    raise InvalidPartnerReferenceError(None, None, reason=f"unknown partner prefix {prefix!r}")


def partner_ref_for(role: PartnerRole | str, partner_id: UUID) -> PartnerRef:
    """Build a PartnerRef from a role and an id (used by list views)."""
    if PartnerRole(role) is PartnerRole.CUSTOMER:
        return CustomerRef(partner_id)
    return SupplierRef(partner_id)
