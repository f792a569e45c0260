"""
BaseService -- abstract base for the kernel's write services.

Responsibility:
    Common constructor and session contract.  Concrete services receive a
    SQLAlchemy ``Session`` plus a ``Clock`` and persist through
    ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's unit of
    work and never commit or roll back themselves.  The unit of work
    (debt_kernel.db.unit_of_work) owns commit and rollback, which keeps a
    multi-year full sync atomic.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session

from debt_kernel.domain.clock import Clock, SystemClock

# Actor recorded on ledger rows written by automated syncs.
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000000")


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods; those live in selectors/.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
