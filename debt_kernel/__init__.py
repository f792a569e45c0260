"""
Debt Kernel - the core of the partner debt ledger.

Derives, per partner (customer or supplier) and per calendar year, an
authoritative running balance from raw orders, payments, returns and
adjustments, and persists it as one ledger row per (partner, year).

Layers:
    db/         engine, declarative base, column types, unit of work
    models/     partner directory, source events, ledger periods
    domain/     pure logic: partner refs, periods, recurrence, DTOs, clock
    selectors/  read-only queries over source events and ledger rows
    services/   flush-only writers (period ledger store, partner directory)
"""

__version__ = "0.1.0"
