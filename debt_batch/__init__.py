"""
debt_batch -- Batch runs and the composition root of the debt ledger.

Provides the batch runner that syncs every active partner of a year
(sequential by default, optionally on a bounded pool across partners) and
LedgerOrchestrator, which wires every ledger service from one session
factory, clock and configuration set.

Architecture:
    debt_batch/ is a top-level package.  Nothing in debt_kernel/ or
    debt_services/ imports from debt_batch.
"""
