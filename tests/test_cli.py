"""Tests for scripts/debt_cli.py against a file-backed SQLite database."""

import importlib.util
import json
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from debt_kernel.db.engine import get_session_factory, reset_engine

CLI_PATH = Path(__file__).resolve().parents[1] / "scripts" / "debt_cli.py"


def _load_cli():
    spec = importlib.util.spec_from_file_location("debt_cli", CLI_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cli(tmp_path, monkeypatch, capsys):
    module = _load_cli()
    db_url = f"sqlite:///{tmp_path / 'ledger.db'}"

    def run(*args):
        monkeypatch.setattr(sys, "argv", ["debt_cli.py", "--db-url", db_url, *args])
        code = module.main()
        return code, capsys.readouterr()

    yield run
    reset_engine()


class TestCli:
    @pytest.fixture
    def customer(self, cli, seed_factory):
        code, _ = cli("init-db")
        assert code == 0
        seed = seed_factory(get_session_factory())
        c = seed.customer(name="An Phu", email="ketoan@anphu.vn")
        seed.order(c, 1_000_000, datetime(2024, 1, 10, tzinfo=timezone.utc))
        seed.payment(c, 600_000, datetime(2024, 6, 1, tzinfo=timezone.utc))
        return c

    def test_sync_snap_prints_period(self, cli, customer):
        c = customer

        code, out = cli("sync-snap", "--customer", str(c.id), "--year", "2024")

        assert code == 0
        payload = json.loads(out.out)
        assert payload["period_name"] == "2024"
        assert Decimal(payload["closing_balance"]) == Decimal("400000")
        assert payload["status"] == "unpaid"

    def test_audit_exit_code_reflects_defects(self, cli, customer):
        c = customer

        code, out = cli("audit", "--year", "2024")
        assert code == 2
        assert json.loads(out.out)["defects"][0]["type"] == "MISSING_DATA"

        cli("sync-full", "--customer", str(c.id), "--year", "2024")
        code, _ = cli("audit", "--year", "2024")
        assert code == 0

    def test_ledger_errors_exit_one(self, cli, customer):
        c = customer

        code, out = cli("lock", "--customer", str(c.id), "--year", "2023")

        assert code == 1
        assert "PERIOD_NOT_FOUND" in out.err

    def test_partner_flags_are_exclusive(self, cli):
        with pytest.raises(SystemExit):
            cli("sync-snap", "--customer", "a", "--supplier", "b")

    def test_each_invocation_gets_a_correlation_id(self, cli, customer, captured_logs):
        cli("sync-snap", "--customer", str(customer.id), "--year", "2024")
        cli("sync-snap", "--customer", str(customer.id), "--year", "2024")

        completed = [r for r in captured_logs() if r["message"] == "debt_sync_snap_completed"]
        assert len(completed) == 2
        ids = {r["correlation_id"] for r in completed}
        assert len(ids) == 2
