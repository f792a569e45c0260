"""
Observability hooks for the debt ledger.

Emits structured log events for metrics and dashboards:
- Cache effectiveness: cache_hit / cache_miss / cache_invalidated.
- Sync latency: sync_completed (mode, years walked, duration_ms).
- Batch outcome: batch_completed (totals, failures, duration).
- Ledger health: integrity_defect (one event per defect, with severity).

All events carry a consistent ``observability_event`` field and stable
extra fields so log aggregators can build counters from them.

Usage:
    from debt_services.observability import log_cache_hit, log_sync_completed
    log_cache_hit(key="smart_debt:list:{...}")
    log_sync_completed(mode="snapshot", partner_key="C-...", duration_ms=12.5)
"""

from __future__ import annotations

from typing import Any

from debt_kernel.logging_config import get_logger

logger = get_logger("services.observability")

# Standard event names for filtering in log pipelines
EVENT_CACHE_HIT = "cache_hit"
EVENT_CACHE_MISS = "cache_miss"
EVENT_CACHE_INVALIDATED = "cache_invalidated"
EVENT_SYNC_COMPLETED = "sync_completed"
EVENT_BATCH_COMPLETED = "batch_completed"
EVENT_INTEGRITY_DEFECT = "integrity_defect"


def log_cache_hit(*, key: str, **extra: Any) -> None:
    logger.debug(
        "debt_cache_hit",
        extra={"observability_event": EVENT_CACHE_HIT, "cache_key": key, **extra},
    )


def log_cache_miss(*, key: str, **extra: Any) -> None:
    logger.debug(
        "debt_cache_miss",
        extra={"observability_event": EVENT_CACHE_MISS, "cache_key": key, **extra},
    )


def log_cache_invalidated(*, prefix: str, removed: int, reason: str | None = None) -> None:
    """Log a pattern invalidation (after a committed sync or a batch)."""
    payload: dict[str, Any] = {
        "observability_event": EVENT_CACHE_INVALIDATED,
        "cache_prefix": prefix,
        "removed": removed,
    }
    if reason is not None:
        payload["reason"] = reason
    logger.info("debt_cache_invalidated", extra=payload)


def log_sync_completed(
    *,
    mode: str,
    partner_key: str,
    period_name: str,
    duration_ms: float,
    years_synced: int = 1,
    opening_method: str | None = None,
    **extra: Any,
) -> None:
    """
    Log a committed per-partner sync.

    Use for sync latency percentiles per mode.
    """
    payload: dict[str, Any] = {
        "observability_event": EVENT_SYNC_COMPLETED,
        "mode": mode,
        "partner_key": partner_key,
        "period_name": period_name,
        "years_synced": years_synced,
        "duration_ms": round(duration_ms, 2),
        **extra,
    }
    if opening_method is not None:
        payload["opening_method"] = opening_method
    logger.info("debt_sync_observed", extra=payload)


def log_batch_completed(
    *,
    mode: str,
    year: int,
    total_checked: int,
    succeeded: int,
    failed: int,
    duration_ms: float,
    **extra: Any,
) -> None:
    payload: dict[str, Any] = {
        "observability_event": EVENT_BATCH_COMPLETED,
        "mode": mode,
        "year": year,
        "total_checked": total_checked,
        "succeeded": succeeded,
        "failed": failed,
        "duration_ms": round(duration_ms, 2),
        **extra,
    }
    logger.info("debt_batch_observed", extra=payload)


def log_integrity_defect(
    *,
    defect_type: str,
    severity: str,
    partner_key: str,
    period_name: str,
    **extra: Any,
) -> None:
    """
    Log one defect found by the integrity auditor.

    defect_type is one of INTERNAL_MATH_ERROR, CROSS_PERIOD_ERROR,
    MISSING_DATA.
    """
    logger.warning(
        "debt_integrity_defect",
        extra={
            "observability_event": EVENT_INTEGRITY_DEFECT,
            "defect_type": defect_type,
            "severity": severity,
            "partner_key": partner_key,
            "period_name": period_name,
            **extra,
        },
    )
