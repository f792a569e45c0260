"""
Typed Exception Hierarchy for the Debt Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (request handlers, the batch runner, the CLI) must react to ledger
failures by TYPE, never by parsing messages:

    try:
        sync_service.sync_snap(partner, 2024)
    except PartnerNotFoundError as e:
        return api_error(404, code=e.code, partner=e.partner_key)
    except PeriodLockedError as e:
        return api_error(409, code=e.code, period=e.period_name)

Every exception carries:
  1. A class-level CODE (machine-readable, API-safe)
  2. Structured attributes (partner key, period name, ...) instead of
     context buried in the message string

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DebtLedgerError (base)
    |
    +-- LedgerValidationError
    |   +-- InvalidPartnerReferenceError
    |   +-- InvalidPeriodError
    |   +-- MissingContactAddressError
    |
    +-- PartnerNotFoundError
    |
    +-- PeriodError
    |   +-- PeriodNotFoundError
    |   +-- PeriodLockedError
    |
    +-- SyncTimeoutError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_PARTNER_REFERENCE   | Neither or both of customer/supplier id
                | INVALID_PERIOD              | Year / period label is malformed
                | MISSING_CONTACT_ADDRESS     | Notice requested, partner has no email
----------------|-----------------------------|-----------------------------------------
Partner         | PARTNER_NOT_FOUND           | Partner id does not exist
----------------|-----------------------------|-----------------------------------------
Period          | PERIOD_NOT_FOUND            | No ledger row for (partner, period)
                | PERIOD_LOCKED               | Recompute/overwrite of a locked period
----------------|-----------------------------|-----------------------------------------
Sync            | SYNC_TIMEOUT                | Unit of work exceeded its deadline
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | Invalid ledger settings

Integrity defects found by the auditor are DATA, not exceptions.  Errors
raised by the data store propagate unchanged and are not wrapped here.
"""


class DebtLedgerError(Exception):
    """
    Base exception for all debt ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "DEBT_LEDGER_ERROR"


# Validation exceptions


class LedgerValidationError(DebtLedgerError):
    """Caller input rejected before any read of source data."""

    code: str = "VALIDATION_ERROR"


class InvalidPartnerReferenceError(LedgerValidationError):
    """Exactly one of customer_id / supplier_id must be supplied."""

    code: str = "INVALID_PARTNER_REFERENCE"

    def __init__(
        self,
        customer_id: object,
        supplier_id: object,
        reason: str | None = None,
    ):
        self.customer_id = customer_id
        self.supplier_id = supplier_id
        if reason is None:
            if customer_id is None and supplier_id is None:
                reason = "neither customer_id nor supplier_id given"
            else:
                reason = "both customer_id and supplier_id given"
        self.reason = reason
        super().__init__(f"Select exactly one customer or one supplier: {reason}")


class InvalidPeriodError(LedgerValidationError):
    """Year or period label is malformed or out of range."""

    code: str = "INVALID_PERIOD"

    def __init__(self, value: object, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid period {value!r}: {reason}")


class MissingContactAddressError(LedgerValidationError):
    """A notice was requested but no recipient address can be resolved."""

    code: str = "MISSING_CONTACT_ADDRESS"

    def __init__(self, partner_key: str, partner_name: str):
        self.partner_key = partner_key
        self.partner_name = partner_name
        super().__init__(
            f"Partner {partner_name} ({partner_key}) has no email address; "
            "update the partner or pass a custom address"
        )


# Partner exceptions


class PartnerNotFoundError(DebtLedgerError):
    """Partner identity does not exist in the directory."""

    code: str = "PARTNER_NOT_FOUND"

    def __init__(self, partner_key: str):
        self.partner_key = partner_key
        super().__init__(f"Partner not found: {partner_key}")


# Period exceptions


class PeriodError(DebtLedgerError):
    """Base exception for ledger period errors."""

    code: str = "PERIOD_ERROR"


class PeriodNotFoundError(PeriodError):
    """No ledger row exists for the partner and period."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, partner_key: str, period_name: str):
        self.partner_key = partner_key
        self.period_name = period_name
        super().__init__(f"No ledger period {period_name} for partner {partner_key}")


class PeriodLockedError(PeriodError):
    """
    Attempted to recompute or overwrite a locked period.

    Locked periods are closed against automatic recomputation; they must be
    unlocked explicitly before a sync may touch them again.
    """

    code: str = "PERIOD_LOCKED"

    def __init__(self, partner_key: str, period_name: str, operation: str):
        self.partner_key = partner_key
        self.period_name = period_name
        self.operation = operation
        super().__init__(
            f"Cannot {operation} locked period {period_name} for partner {partner_key}"
        )


# Sync exceptions


class SyncTimeoutError(DebtLedgerError):
    """
    A sync unit of work ran past its deadline.

    Raised inside the unit of work so that the whole transaction rolls back;
    no partially walked years are persisted.
    """

    code: str = "SYNC_TIMEOUT"

    def __init__(self, operation: str, timeout_seconds: float, elapsed_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f"{operation} exceeded its {timeout_seconds:g}s timeout "
            f"after {elapsed_seconds:.2f}s"
        )


# Configuration exceptions


class ConfigurationError(DebtLedgerError):
    """Ledger settings failed validation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid configuration for {field_name}: {reason}")
