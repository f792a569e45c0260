"""
LedgerSettings schema.

Typed, frozen view of a debt ledger configuration set.  YAML is parsed into
these dataclasses by ``debt_config.loader``; services receive the sections
they need through the composition root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class LockPolicy(str, Enum):
    """What a sync does when it meets a locked period."""

    REJECT = "reject"    # locked periods are never recomputed
    PERMIT = "permit"    # locked periods are recomputed like any other


class CacheBackendKind(str, Enum):
    MEMORY = "memory"    # process-local, lost on restart
    REDIS = "redis"      # shared across processes; needs the redis extra


class NoticeChannel(str, Enum):
    LOG = "log"      # record and log only
    SMTP = "smtp"


@dataclass(frozen=True)
class LedgerPolicy:
    """Arithmetic thresholds of the ledger."""

    tolerance_epsilon: Decimal = Decimal("10")
    paid_threshold: Decimal = Decimal("1000")
    presentation_places: int = 0
    lock_policy: LockPolicy = LockPolicy.REJECT


@dataclass(frozen=True)
class SyncPolicy:
    full_timeout_seconds: float = 120.0
    snapshot_timeout_seconds: float = 5.0
    # Note written on every non-target year of a full walk; {year} is filled in.
    full_history_note: str = "auto history sync {year}"
    full_batch_note: str = "batch full sync {year}"
    snapshot_batch_note: str = "batch snapshot sync {year}"


@dataclass(frozen=True)
class BatchPolicy:
    # 1 = sequential.  Parallelism only ever spans partners.
    max_workers: int = 1


@dataclass(frozen=True)
class CachePolicy:
    ttl_seconds: int = 300
    key_prefix: str = "smart_debt:"
    backend: CacheBackendKind = CacheBackendKind.MEMORY
    redis_url: str = "redis://localhost:6379/0"


@dataclass(frozen=True)
class ViewPolicy:
    default_page_size: int = 20
    max_page_size: int = 200


@dataclass(frozen=True)
class NoticePolicy:
    subject_prefix: str = "[NAM VIET]"
    from_address: str = "no-reply@localhost"
    period_subject: str = "{prefix} Debt reconciliation statement {year} - {code}"
    reminder_subject: str = "{prefix} Current debt notice - {code}"
    channel: NoticeChannel = NoticeChannel.LOG
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_use_tls: bool = True
    smtp_username: str = ""
    # Name of the environment variable holding the SMTP password.
    smtp_password_env: str = "DEBT_LEDGER_SMTP_PASSWORD"
    smtp_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LedgerSettings:
    """Root configuration object returned by get_active_config()."""

    config_id: str
    version: int
    checksum: str
    ledger: LedgerPolicy = field(default_factory=LedgerPolicy)
    sync: SyncPolicy = field(default_factory=SyncPolicy)
    batch: BatchPolicy = field(default_factory=BatchPolicy)
    cache: CachePolicy = field(default_factory=CachePolicy)
    views: ViewPolicy = field(default_factory=ViewPolicy)
    notices: NoticePolicy = field(default_factory=NoticePolicy)
