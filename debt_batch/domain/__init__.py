"""
debt_batch.domain -- Pure types for ledger batch runs.

ZERO I/O.  All types are frozen dataclasses.
"""

from debt_batch.domain.types import BatchFailure, BatchMode, BatchSyncSummary

__all__ = [
    "BatchFailure",
    "BatchMode",
    "BatchSyncSummary",
]
