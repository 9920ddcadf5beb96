"""Persistent record of applied migrations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Sequence

from collector.common import CollectorDatabase
from collector.errors import LedgerError
from collector_db.definitions import Migration

logger = logging.getLogger(__name__)

LEDGER_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS schema_migration_ledger (
    migration_id TEXT NOT NULL,
    name TEXT NOT NULL,
    applied_at_utc TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT pk_schema_migration_ledger PRIMARY KEY (migration_id)
)
"""


@dataclass(frozen=True)
class LedgerEntry:
    """One applied migration."""

    migration_id: str
    name: str
    applied_at_utc: datetime | None


class MigrationLedger:
    """Ledger table accessor; every failure here is fatal for schema management."""

    def __init__(self, db: CollectorDatabase) -> None:
        self._db = db

    def ensure_table(self) -> None:
        """Create the ledger table if absent; runs before any migration is considered."""
        try:
            with self._db.transaction():
                self._db.execute(LEDGER_TABLE_DDL)
        except Exception as exc:
            logger.exception("Migration ledger table could not be created.")
            raise LedgerError(f"Migration ledger table could not be created: {exc}") from exc

    def table_exists(self) -> bool:
        """Whether the ledger table is visible on the current search_path; creates nothing."""
        try:
            row = self._db.fetch_one("SELECT to_regclass('schema_migration_ledger') IS NOT NULL AS present")
        except Exception as exc:
            logger.exception("Migration ledger could not be inspected.")
            raise LedgerError(f"Migration ledger could not be inspected: {exc}") from exc
        return bool(row and row["present"])

    def list_applied(self) -> tuple[LedgerEntry, ...]:
        try:
            rows = self._db.fetch_all(
                """
                SELECT migration_id, name, applied_at_utc
                FROM schema_migration_ledger
                ORDER BY migration_id ASC
                """
            )
        except Exception as exc:
            logger.exception("Migration ledger could not be read.")
            raise LedgerError(f"Migration ledger could not be read: {exc}") from exc
        return tuple(
            LedgerEntry(
                migration_id=str(row["migration_id"]),
                name=str(row["name"]),
                applied_at_utc=row.get("applied_at_utc"),
            )
            for row in rows
        )

    def has_applied(self, migration_id: str) -> bool:
        try:
            row = self._db.fetch_one(
                """
                SELECT migration_id
                FROM schema_migration_ledger
                WHERE migration_id = :migration_id
                """,
                {"migration_id": migration_id},
            )
        except Exception as exc:
            logger.exception("Migration ledger could not be read.")
            raise LedgerError(f"Migration ledger could not be read: {exc}") from exc
        return row is not None

    def record_applied(self, migration_id: str, name: str) -> None:
        """Insert the ledger row; callers run this inside the migration's transaction."""
        self._db.execute(
            """
            INSERT INTO schema_migration_ledger (migration_id, name)
            VALUES (:migration_id, :name)
            """,
            {"migration_id": migration_id, "name": name},
        )

    def verify_against(self, migrations: Sequence[Migration]) -> None:
        """Reject orphan ledger rows and pending migrations older than an applied one."""
        known_ids = [migration.migration_id for migration in migrations]
        applied_ids = {entry.migration_id for entry in self.list_applied()}

        orphans = sorted(applied_ids - set(known_ids))
        if orphans:
            raise LedgerError(f"Ledger references unknown migrations: {orphans}")

        if not applied_ids:
            return
        highest_applied = max(applied_ids)
        skipped = [mid for mid in known_ids if mid not in applied_ids and mid < highest_applied]
        if skipped:
            raise LedgerError(
                f"Pending migrations {skipped} precede already-applied migration {highest_applied}"
            )
