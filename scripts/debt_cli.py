#!/usr/bin/env python3
"""
Command-line entry point for the debt ledger.

Runs syncs, batch runs, integrity audits, period locks, notices and the
read views against the database named by DEBT_LEDGER_DATABASE_URL (or
--db-url).  Results are printed as JSON.

Usage:
  python3 scripts/debt_cli.py init-db
  python3 scripts/debt_cli.py sync-full --customer <uuid> --year 2024
  python3 scripts/debt_cli.py sync-snap --supplier <uuid> --year 2024 --notes "manual fix"
  python3 scripts/debt_cli.py sync-all --mode snap --year 2024
  python3 scripts/debt_cli.py audit --year 2024
  python3 scripts/debt_cli.py lock --customer <uuid> --year 2023
  python3 scripts/debt_cli.py notice --customer <uuid> [--year 2024] [--email a@b.c]
  python3 scripts/debt_cli.py list --type customer --status unpaid --year 2024
  python3 scripts/debt_cli.py detail --customer <uuid> --year 2024
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from uuid import UUID, uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DB_URL = os.environ.get("DEBT_LEDGER_DATABASE_URL", "sqlite:///debt_ledger.db")


def _jsonable(value):
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2, default=_jsonable, ensure_ascii=False))


def _add_partner_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--customer", type=str, help="Customer id (UUID)")
    group.add_argument("--supplier", type=str, help="Supplier id (UUID)")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Debt ledger: per-partner yearly periods.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--db-url", type=str, default=DB_URL)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration set")
    parser.add_argument("--verbose", action="store_true", help="Debug-level structured logs on stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables")

    for name in ("sync-full", "sync-snap"):
        p = sub.add_parser(name, help=f"{name.replace('-', ' ')} for one partner")
        _add_partner_args(p)
        p.add_argument("--year", type=str, default=None)
        p.add_argument("--notes", type=str, default=None)
        p.add_argument("--assign-user", type=UUID, default=None)

    p = sub.add_parser("sync-all", help="Sync every active partner of a year")
    p.add_argument("--mode", choices=("full", "snap"), default="snap")
    p.add_argument("--year", type=str, default=None)

    p = sub.add_parser("audit", help="Integrity check of one year")
    p.add_argument("--year", type=str, default=None)

    for name in ("lock", "unlock"):
        p = sub.add_parser(name, help=f"{name} a period")
        _add_partner_args(p)
        p.add_argument("--year", type=str, required=True)

    p = sub.add_parser("notice", help="Send a debt notice")
    _add_partner_args(p)
    p.add_argument("--year", type=str, default=None)
    p.add_argument("--email", type=str, default=None)
    p.add_argument("--message", type=str, default=None)
    p.add_argument("--cc", action="append", default=[])

    p = sub.add_parser("list", help="Debt list view")
    p.add_argument("--type", choices=("customer", "supplier"), default=None)
    p.add_argument("--search", type=str, default=None)
    p.add_argument("--status", choices=("paid", "unpaid"), default=None)
    p.add_argument("--assigned-user", type=UUID, default=None)
    p.add_argument("--province", type=str, default=None)
    p.add_argument("--year", type=int, default=None)
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int, default=None)

    p = sub.add_parser("detail", help="Debt detail view of one partner")
    _add_partner_args(p)
    p.add_argument("--year", type=str, default=None)

    return parser


def main() -> int:
    args = _build_parser().parse_args()

    from debt_kernel.logging_config import LogContext

    # One id per invocation ties the command's log lines together.
    with LogContext.bind(correlation_id=uuid4().hex):
        return _run(args)


def _run(args: argparse.Namespace) -> int:
    from debt_batch.orchestrator import LedgerOrchestrator
    from debt_kernel.db.engine import create_tables, init_engine_from_url
    from debt_kernel.domain.dtos import DebtListFilters
    from debt_kernel.domain.partner import PartnerRole, partner_ref_from_ids
    from debt_kernel.domain.recurrence import DebtStatus
    from debt_kernel.exceptions import DebtLedgerError
    from debt_kernel.logging_config import configure_logging

    if args.verbose:
        configure_logging(level=logging.DEBUG)

    try:
        init_engine_from_url(args.db_url, echo=False)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    if args.command == "init-db":
        create_tables()
        print("  Tables created.")
        return 0

    ledger = LedgerOrchestrator.from_settings(
        config_path=str(args.config) if args.config else None,
    )

    def partner():
        return partner_ref_from_ids(customer_id=args.customer, supplier_id=args.supplier)

    try:
        if args.command == "sync-full":
            result = ledger.sync.sync_full(
                partner(), args.year, notes=args.notes, assigned_user_id=args.assign_user,
            )
            _emit({"years": [p.period_name for p in result.periods], "final": result.final})
        elif args.command == "sync-snap":
            _emit(ledger.sync.sync_snap(
                partner(), args.year, notes=args.notes, assigned_user_id=args.assign_user,
            ))
        elif args.command == "sync-all":
            if args.mode == "full":
                summary = ledger.batch.sync_full_all(args.year)
            else:
                summary = ledger.batch.sync_snap_all(args.year)
            _emit(summary)
            return 0 if summary.all_succeeded else 2
        elif args.command == "audit":
            report = ledger.auditor.check_integrity(args.year)
            _emit({
                "year": report.year,
                "total_checked": report.total_checked,
                "defect_count": report.defect_count,
                "defects": [
                    {
                        "type": d.defect_type.value,
                        "severity": d.severity.value,
                        "partner": d.partner.key,
                        "name": d.partner_name,
                        "reason": d.reason,
                        "details": dict(d.details),
                    }
                    for d in report.defects
                ],
            })
            return 0 if report.is_clean else 2
        elif args.command == "lock":
            _emit(ledger.sync.lock_period(partner(), args.year))
        elif args.command == "unlock":
            _emit(ledger.sync.unlock_period(partner(), args.year))
        elif args.command == "notice":
            _emit(ledger.notices.send_debt_notice(
                partner(), args.year, custom_email=args.email, message=args.message, cc=args.cc,
            ))
        elif args.command == "list":
            _emit(ledger.reads.list_debts(DebtListFilters(
                partner_type=PartnerRole(args.type) if args.type else None,
                search=args.search,
                assigned_user_id=args.assigned_user,
                status=DebtStatus(args.status) if args.status else None,
                year=args.year,
                province=args.province,
                page=args.page,
                limit=args.limit,
            )))
        elif args.command == "detail":
            _emit(ledger.reads.get_detail(partner(), args.year))
    except DebtLedgerError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
