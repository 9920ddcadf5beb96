"""Schema lifecycle: migration ledger, ordered migration runner and replaceable-object refresher."""

from __future__ import annotations

from collector.schema.ledger import LedgerEntry, MigrationLedger
from collector.schema.migration_runner import MigrationRunner
from collector.schema.refresher import ReplaceableObjectRefresher

__all__ = ["LedgerEntry", "MigrationLedger", "MigrationRunner", "ReplaceableObjectRefresher"]
