"""
Module: debt_kernel.db.unit_of_work
Responsibility: One atomic, deadline-bounded transaction around a ledger sync.
Architecture position: Kernel > DB.  Imports exceptions, logging and
    db/engine.py only.

Invariants enforced:
    - All reads of source events and all writes of ledger rows and partner
      balances inside one sync either commit together or roll back together.
    - A sync that runs past its timeout fails atomically.  The deadline is
      checked by the caller between years and once more before commit; on
      PostgreSQL the server also enforces it per statement through
      ``SET LOCAL statement_timeout``.

Failure modes:
    - SyncTimeoutError when the deadline has passed at a check point.
    - Any exception raised inside the block rolls the session back and is
      re-raised unchanged.
"""

import time
from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from debt_kernel.db.engine import is_postgres
from debt_kernel.exceptions import SyncTimeoutError
from debt_kernel.logging_config import get_logger

logger = get_logger("db.unit_of_work")


class UnitOfWork:
    """
    Handle yielded by unit_of_work(): the open session plus its deadline.

    Services receive ``uow.session`` and flush only; the context manager
    owns commit and rollback.
    """

    def __init__(
        self,
        session: Session,
        operation: str,
        timeout_seconds: float,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        self._monotonic = monotonic
        self._started_at = monotonic()

    @property
    def elapsed_seconds(self) -> float:
        return self._monotonic() - self._started_at

    def check_deadline(self) -> None:
        """Raise SyncTimeoutError if the unit of work ran out of time."""
        elapsed = self.elapsed_seconds
        if elapsed > self.timeout_seconds:
            raise SyncTimeoutError(self.operation, self.timeout_seconds, elapsed)

    def apply_statement_timeout(self) -> None:
        if is_postgres(self.session):
            millis = int(self.timeout_seconds * 1000)
            self.session.execute(text(f"SET LOCAL statement_timeout = {millis}"))


@contextmanager
def unit_of_work(
    session_factory: sessionmaker[Session],
    *,
    operation: str,
    timeout_seconds: float,
    monotonic: Callable[[], float] = time.monotonic,
) -> Generator[UnitOfWork, None, None]:
    """
    Run a block as one atomic transaction with a deadline.

    Usage:
        with unit_of_work(factory, operation="sync_snap", timeout_seconds=5) as uow:
            store = PeriodLedgerStore(uow.session, clock)
            ...
            uow.check_deadline()
    """
    session = session_factory()
    uow = UnitOfWork(session, operation, timeout_seconds, monotonic)
    try:
        uow.apply_statement_timeout()
        yield uow
        uow.check_deadline()
        session.commit()
        logger.debug(
            "unit_of_work_committed",
            extra={
                "operation": operation,
                "elapsed_seconds": round(uow.elapsed_seconds, 4),
            },
        )
    except Exception:
        session.rollback()
        logger.warning(
            "unit_of_work_rolled_back",
            extra={"operation": operation},
            exc_info=True,
        )
        raise
    finally:
        session.close()
