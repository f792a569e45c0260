"""
Configuration Loader (``debt_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``debt_config.schema`` dataclasses.  Runtime callers go through
``debt_config.get_active_config()``; this module is its implementation
and test tooling.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Missing sections and keys fall back to the schema defaults; present but
  invalid values raise ``ConfigurationError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  canonical content for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import yaml

from debt_config.schema import (
    BatchPolicy,
    CacheBackendKind,
    CachePolicy,
    LedgerPolicy,
    LedgerSettings,
    LockPolicy,
    NoticeChannel,
    NoticePolicy,
    SyncPolicy,
    ViewPolicy,
)
from debt_kernel.exceptions import ConfigurationError

E = TypeVar("E", bound=Enum)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _decimal(section: str, key: str, value: Any, minimum: Decimal = Decimal("0")) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"{section}.{key}", f"not a number: {value!r}") from None
    if not result.is_finite() or result < minimum:
        raise ConfigurationError(f"{section}.{key}", f"must be >= {minimum}, got {value!r}")
    return result


def _positive_number(section: str, key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"{section}.{key}", f"must be a positive number, got {value!r}")
    return float(value)


def _positive_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{section}.{key}", f"must be a positive integer, got {value!r}")
    return value


def _text(section: str, key: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{section}.{key}", f"must be a non-empty string, got {value!r}")
    return value


def _flag(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key}", f"must be true or false, got {value!r}")
    return value


def _choice(section: str, key: str, enum_type: type[E], value: Any) -> E:
    try:
        return enum_type(value)
    except ValueError:
        raise ConfigurationError(
            f"{section}.{key}",
            f"must be one of {[m.value for m in enum_type]}, got {value!r}",
        ) from None


def parse_ledger(data: dict[str, Any]) -> LedgerPolicy:
    defaults = LedgerPolicy()
    places = data.get("presentation_places", defaults.presentation_places)
    if isinstance(places, bool) or not isinstance(places, int) or not 0 <= places <= 9:
        raise ConfigurationError("ledger.presentation_places", f"must be 0..9, got {places!r}")
    return LedgerPolicy(
        tolerance_epsilon=_decimal(
            "ledger", "tolerance_epsilon",
            data.get("tolerance_epsilon", defaults.tolerance_epsilon),
        ),
        paid_threshold=_decimal(
            "ledger", "paid_threshold",
            data.get("paid_threshold", defaults.paid_threshold),
        ),
        presentation_places=places,
        lock_policy=_choice(
            "ledger", "lock_policy", LockPolicy,
            data.get("lock_policy", defaults.lock_policy.value),
        ),
    )


def parse_sync(data: dict[str, Any]) -> SyncPolicy:
    defaults = SyncPolicy()
    full_timeout = _positive_number(
        "sync", "full_timeout_seconds",
        data.get("full_timeout_seconds", defaults.full_timeout_seconds),
    )
    snapshot_timeout = _positive_number(
        "sync", "snapshot_timeout_seconds",
        data.get("snapshot_timeout_seconds", defaults.snapshot_timeout_seconds),
    )
    if full_timeout < snapshot_timeout:
        raise ConfigurationError(
            "sync.full_timeout_seconds",
            "must not be smaller than sync.snapshot_timeout_seconds",
        )
    return SyncPolicy(
        full_timeout_seconds=full_timeout,
        snapshot_timeout_seconds=snapshot_timeout,
        full_history_note=_text(
            "sync", "full_history_note",
            data.get("full_history_note", defaults.full_history_note),
        ),
        full_batch_note=_text(
            "sync", "full_batch_note",
            data.get("full_batch_note", defaults.full_batch_note),
        ),
        snapshot_batch_note=_text(
            "sync", "snapshot_batch_note",
            data.get("snapshot_batch_note", defaults.snapshot_batch_note),
        ),
    )


def parse_batch(data: dict[str, Any]) -> BatchPolicy:
    return BatchPolicy(
        max_workers=_positive_int(
            "batch", "max_workers", data.get("max_workers", BatchPolicy.max_workers),
        ),
    )


def parse_cache(data: dict[str, Any]) -> CachePolicy:
    defaults = CachePolicy()
    return CachePolicy(
        ttl_seconds=_positive_int("cache", "ttl_seconds", data.get("ttl_seconds", defaults.ttl_seconds)),
        key_prefix=_text("cache", "key_prefix", data.get("key_prefix", defaults.key_prefix)),
        backend=_choice(
            "cache", "backend", CacheBackendKind, data.get("backend", defaults.backend.value),
        ),
        redis_url=_text("cache", "redis_url", data.get("redis_url", defaults.redis_url)),
    )


def parse_views(data: dict[str, Any]) -> ViewPolicy:
    defaults = ViewPolicy()
    default_size = _positive_int(
        "views", "default_page_size", data.get("default_page_size", defaults.default_page_size),
    )
    max_size = _positive_int(
        "views", "max_page_size", data.get("max_page_size", defaults.max_page_size),
    )
    if default_size > max_size:
        raise ConfigurationError("views.default_page_size", "must not exceed views.max_page_size")
    return ViewPolicy(default_page_size=default_size, max_page_size=max_size)


def parse_notices(data: dict[str, Any]) -> NoticePolicy:
    defaults = NoticePolicy()
    username = data.get("smtp_username", defaults.smtp_username)
    if not isinstance(username, str):
        raise ConfigurationError("notices.smtp_username", f"must be a string, got {username!r}")
    return NoticePolicy(
        subject_prefix=_text(
            "notices", "subject_prefix", data.get("subject_prefix", defaults.subject_prefix),
        ),
        from_address=_text(
            "notices", "from_address", data.get("from_address", defaults.from_address),
        ),
        period_subject=_text(
            "notices", "period_subject", data.get("period_subject", defaults.period_subject),
        ),
        reminder_subject=_text(
            "notices", "reminder_subject", data.get("reminder_subject", defaults.reminder_subject),
        ),
        channel=_choice(
            "notices", "channel", NoticeChannel, data.get("channel", defaults.channel.value),
        ),
        smtp_host=_text("notices", "smtp_host", data.get("smtp_host", defaults.smtp_host)),
        smtp_port=_positive_int("notices", "smtp_port", data.get("smtp_port", defaults.smtp_port)),
        smtp_use_tls=_flag(
            "notices", "smtp_use_tls", data.get("smtp_use_tls", defaults.smtp_use_tls),
        ),
        smtp_username=username,
        smtp_password_env=_text(
            "notices", "smtp_password_env",
            data.get("smtp_password_env", defaults.smtp_password_env),
        ),
        smtp_timeout_seconds=_positive_number(
            "notices", "smtp_timeout_seconds",
            data.get("smtp_timeout_seconds", defaults.smtp_timeout_seconds),
        ),
    )


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a whole configuration set.

    Raises:
        ConfigurationError: if any present value is invalid.
    """
    return LedgerSettings(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        ledger=parse_ledger(data.get("ledger") or {}),
        sync=parse_sync(data.get("sync") or {}),
        batch=parse_batch(data.get("batch") or {}),
        cache=parse_cache(data.get("cache") or {}),
        views=parse_views(data.get("views") or {}),
        notices=parse_notices(data.get("notices") or {}),
    )


def load_settings(path: Path) -> LedgerSettings:
    return parse_settings(load_yaml_file(path))
