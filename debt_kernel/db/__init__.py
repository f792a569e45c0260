"""Database layer - engine, base classes, types, and unit of work."""

from debt_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from debt_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from debt_kernel.db.types import Money, PeriodLabel, present_money, to_decimal
from debt_kernel.db.unit_of_work import UnitOfWork, unit_of_work

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "unit_of_work",
    "UnitOfWork",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "PeriodLabel",
    "present_money",
    "to_decimal",
]
