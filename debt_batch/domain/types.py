"""
debt_batch.domain.types -- Pure frozen dataclasses for ledger batch runs.

ZERO I/O.  Frozen dataclasses with enum fields and tuples for immutable
collections.

Invariants enforced:
    - succeeded + failed == total_checked.
    - One BatchFailure per failed partner, in the order partners were
      processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from debt_kernel.domain.partner import PartnerRef


class BatchMode(str, Enum):
    """Which per-partner sync a batch ran."""

    FULL_ALL = "full_all"  # sync_full for every active partner
    SNAP_ALL = "snap_all"  # sync_snap for every active partner


@dataclass(frozen=True)
class BatchFailure:
    """One partner whose sync raised inside a batch."""

    partner: PartnerRef
    error_code: str
    error_message: str

    @property
    def partner_key(self) -> str:
        return self.partner.key


@dataclass(frozen=True)
class BatchSyncSummary:
    """Outcome of a batch run over the active partners of one year."""

    year: int
    mode: BatchMode
    total_checked: int
    succeeded: int
    failed: int
    duration_seconds: float
    failures: tuple[BatchFailure, ...] = ()
    batch_id: str | None = None
    # False when the end-of-batch cache clear failed; the syncs themselves committed.
    cache_cleared: bool = True

    def __post_init__(self) -> None:
        if self.succeeded + self.failed != self.total_checked:
            raise ValueError(
                f"succeeded ({self.succeeded}) + failed ({self.failed}) "
                f"!= total_checked ({self.total_checked})"
            )

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0
