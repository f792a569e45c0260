"""Tests for the structured logging system (debt_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from debt_kernel.exceptions import PeriodLockedError
from debt_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        (record,) = _parse_all_logs(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "debt_kernel.test"
        assert "ts" in record

    def test_extra_fields_and_types(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        partner_id = uuid4()
        get_logger("test").info(
            "synced", extra={"closing": Decimal("400000.5"), "partner_id": partner_id, "years": 3},
        )

        (record,) = _parse_all_logs(stream)
        assert record["closing"] == "400000.5"
        assert record["partner_id"] == str(partner_id)
        assert record["years"] == 3

    def test_context_fields_win_over_extras(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(partner_key="C-1", period_name="2024"):
            get_logger("test").info("x", extra={"partner_key": "C-other"})

        (record,) = _parse_all_logs(stream)
        assert record["partner_key"] == "C-1"
        assert record["period_name"] == "2024"

    def test_ledger_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise PeriodLockedError("C-1", "2023", "recompute")
        except PeriodLockedError:
            get_logger("test").warning("failed", exc_info=True)

        (record,) = _parse_all_logs(stream)
        assert record["exc_type"] == "PeriodLockedError"
        assert record["exc_code"] == "PERIOD_LOCKED"
        assert record["exc_partner_key"] == "C-1"
        assert record["exc_period_name"] == "2023"
        assert record["exc_operation"] == "recompute"
        assert "traceback" in record


class TestLogContext:
    def test_bind_restores_previous_values(self):
        with LogContext.bind(batch_id="b-1"):
            with LogContext.bind(batch_id="b-2", actor_id=None):
                assert LogContext.get_all() == {"batch_id": "b-2"}
            assert LogContext.get_all() == {"batch_id": "b-1"}
        assert LogContext.get_all() == {}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(partner_key="S-1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with LogContext.bind(request_id="r-1"):
                pass

    def test_clear(self):
        with LogContext.bind(partner_key="S-1", period_name="2024"):
            LogContext.clear()
            assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        assert len(logging.getLogger("debt_kernel").handlers) == 1

    def test_level_filters(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        logger = get_logger("test")
        logger.info("dropped")
        logger.warning("kept")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["kept"]

    def test_reset(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        reset_logging()
        root = logging.getLogger("debt_kernel")
        assert root.handlers == []
        assert root.propagate is True
