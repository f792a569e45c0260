"""
debt_config -- single public entrypoint for debt ledger configuration.

Responsibility:
    Provides the ONLY way to obtain ledger settings at runtime through
    ``get_active_config()``.  Thresholds (tolerance epsilon, paid
    threshold), sync timeouts, batch parallelism, cache TTL, page sizes and
    notice templates all come from here.

Architecture position:
    Configuration -- sits above ``debt_kernel`` and below
    ``debt_services`` / ``debt_batch``.  The kernel MUST NEVER import from
    ``debt_config``; services receive the parsed sections they need.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``DEBT_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each sync run to the exact settings that governed it.
"""

from __future__ import annotations

from pathlib import Path

from debt_config.loader import load_settings
from debt_config.schema import (
    BatchPolicy,
    CachePolicy,
    LedgerPolicy,
    LedgerSettings,
    LockPolicy,
    NoticePolicy,
    SyncPolicy,
    ViewPolicy,
)
from debt_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration set shipped with the package
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration set.  Defaults
            to debt_config/sets/default.yaml.

    Returns:
        Frozen LedgerSettings.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ConfigurationError: If a value fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "DEBT_CONFIG_TRACE",
        extra={
            "trace_type": "DEBT_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "config_checksum": settings.checksum,
            "config_path": str(path),
            "tolerance_epsilon": str(settings.ledger.tolerance_epsilon),
            "paid_threshold": str(settings.ledger.paid_threshold),
        },
    )
    return settings


__all__ = [
    "get_active_config",
    "DEFAULT_CONFIG_PATH",
    "LedgerSettings",
    "LedgerPolicy",
    "LockPolicy",
    "SyncPolicy",
    "BatchPolicy",
    "CachePolicy",
    "ViewPolicy",
    "NoticePolicy",
]
