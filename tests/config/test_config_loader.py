"""Tests for debt_config: the shipped set, parsing, validation and the trace."""

from decimal import Decimal

import pytest
import yaml

from debt_config import DEFAULT_CONFIG_PATH, get_active_config
from debt_config.loader import compute_checksum, load_settings, parse_settings
from debt_config.schema import CacheBackendKind, LockPolicy, NoticeChannel
from debt_kernel.exceptions import ConfigurationError


class TestDefaultConfig:
    def test_shipped_set_loads(self):
        settings = get_active_config()

        assert settings.config_id == "smart-debt-default"
        assert settings.version == 1
        assert settings.ledger.tolerance_epsilon == Decimal("10")
        assert settings.ledger.paid_threshold == Decimal("1000")
        assert settings.ledger.presentation_places == 0
        assert settings.ledger.lock_policy is LockPolicy.REJECT
        assert settings.sync.full_timeout_seconds == 120.0
        assert settings.sync.snapshot_timeout_seconds == 5.0
        assert settings.batch.max_workers == 1
        assert settings.cache.ttl_seconds == 300
        assert settings.cache.key_prefix == "smart_debt:"
        assert settings.views.default_page_size == 20
        assert settings.views.max_page_size == 200
        assert settings.notices.subject_prefix == "[NAM VIET]"
        assert settings.cache.backend is CacheBackendKind.MEMORY
        assert settings.notices.channel is NoticeChannel.LOG
        assert settings.notices.smtp_password_env == "DEBT_LEDGER_SMTP_PASSWORD"

    def test_checksum_is_stable(self):
        assert get_active_config().checksum == get_active_config().checksum
        assert len(get_active_config().checksum) == 64

    def test_trace_is_logged(self, captured_logs):
        settings = get_active_config()

        (trace,) = [r for r in captured_logs() if r["message"] == "DEBT_CONFIG_TRACE"]
        assert trace["config_id"] == settings.config_id
        assert trace["config_checksum"] == settings.checksum
        assert trace["config_path"] == str(DEFAULT_CONFIG_PATH)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestParsing:
    def test_empty_document_uses_defaults(self):
        settings = parse_settings({})
        assert settings.config_id == "default"
        assert settings.ledger.tolerance_epsilon == Decimal("10")
        assert settings.sync.full_history_note == "auto history sync {year}"

    def test_overrides(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({
            "config_id": "strict",
            "version": 3,
            "ledger": {"tolerance_epsilon": "0.01", "paid_threshold": 0, "lock_policy": "permit"},
            "batch": {"max_workers": 4},
            "views": {"default_page_size": 50},
            "cache": {"backend": "redis", "redis_url": "redis://cache:6379/1"},
            "notices": {
                "channel": "smtp",
                "from_address": "congno@namviet.vn",
                "smtp_host": "mail.namviet.vn",
                "smtp_port": 465,
                "smtp_use_tls": False,
                "smtp_username": "ledger",
            },
        }))

        settings = load_settings(path)

        assert settings.config_id == "strict"
        assert settings.version == 3
        assert settings.ledger.tolerance_epsilon == Decimal("0.01")
        assert settings.ledger.paid_threshold == Decimal("0")
        assert settings.ledger.lock_policy is LockPolicy.PERMIT
        assert settings.batch.max_workers == 4
        assert settings.views.default_page_size == 50
        assert settings.cache.backend is CacheBackendKind.REDIS
        assert settings.cache.redis_url == "redis://cache:6379/1"
        assert settings.notices.channel is NoticeChannel.SMTP
        assert settings.notices.from_address == "congno@namviet.vn"
        assert settings.notices.smtp_port == 465
        assert settings.notices.smtp_use_tls is False
        assert settings.notices.smtp_username == "ledger"

    def test_checksum_tracks_content(self):
        assert compute_checksum({"a": 1}) == compute_checksum({"a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    @pytest.mark.parametrize(
        "data,field_name",
        [
            ({"ledger": {"tolerance_epsilon": -1}}, "ledger.tolerance_epsilon"),
            ({"ledger": {"paid_threshold": "lots"}}, "ledger.paid_threshold"),
            ({"ledger": {"presentation_places": 12}}, "ledger.presentation_places"),
            ({"ledger": {"lock_policy": "sometimes"}}, "ledger.lock_policy"),
            ({"sync": {"snapshot_timeout_seconds": 0}}, "sync.snapshot_timeout_seconds"),
            ({"sync": {"full_timeout_seconds": 1}}, "sync.full_timeout_seconds"),
            ({"sync": {"full_history_note": ""}}, "sync.full_history_note"),
            ({"batch": {"max_workers": 0}}, "batch.max_workers"),
            ({"cache": {"ttl_seconds": True}}, "cache.ttl_seconds"),
            ({"views": {"default_page_size": 500}}, "views.default_page_size"),
            ({"notices": {"subject_prefix": None}}, "notices.subject_prefix"),
            ({"cache": {"backend": "memcached"}}, "cache.backend"),
            ({"cache": {"redis_url": ""}}, "cache.redis_url"),
            ({"notices": {"channel": "fax"}}, "notices.channel"),
            ({"notices": {"smtp_port": "587"}}, "notices.smtp_port"),
            ({"notices": {"smtp_use_tls": "yes"}}, "notices.smtp_use_tls"),
            ({"notices": {"smtp_username": 42}}, "notices.smtp_username"),
        ],
    )
    def test_invalid_values(self, data, field_name):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_settings(data)
        assert exc_info.value.field_name == field_name
        assert exc_info.value.code == "CONFIGURATION_ERROR"
