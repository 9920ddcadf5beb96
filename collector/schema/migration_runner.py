"""Apply pending versioned migrations in strict ascending order."""

from __future__ import annotations

import logging
from typing import Sequence

from collector.common import CollectorDatabase
from collector.errors import MigrationError
from collector.schema.ledger import MigrationLedger
from collector_db.definitions import Migration
from collector_db.migrations import MIGRATIONS

logger = logging.getLogger(__name__)


def validate_migration_order(migrations: Sequence[Migration]) -> None:
    """Migration ids must be unique and strictly ascending."""
    previous: str | None = None
    for migration in migrations:
        if previous is not None and migration.migration_id <= previous:
            raise MigrationError(
                f"Migration ids must be strictly ascending: {migration.migration_id} follows {previous}",
                migration_id=migration.migration_id,
                name=migration.name,
            )
        previous = migration.migration_id


class MigrationRunner:
    """Sequential migration runner backed by :class:`MigrationLedger`."""

    def __init__(
        self,
        db: CollectorDatabase,
        migrations: Sequence[Migration] = MIGRATIONS,
        *,
        ledger: MigrationLedger | None = None,
    ) -> None:
        validate_migration_order(migrations)
        self._db = db
        self._migrations = tuple(migrations)
        self._ledger = ledger or MigrationLedger(db)

    @property
    def ledger(self) -> MigrationLedger:
        return self._ledger

    def apply_pending(self) -> list[str]:
        """Apply every unapplied migration; return applied names in application order.

        A failing migration is rolled back and aborts the run; later
        migrations are never attempted.
        """
        self._ledger.ensure_table()
        self._ledger.verify_against(self._migrations)

        applied: list[str] = []
        for migration in self._migrations:
            if self._ledger.has_applied(migration.migration_id):
                continue
            self._apply_one(migration)
            applied.append(migration.name)
        if not applied:
            logger.info("Schema is up to date; no migrations applied.")
        return applied

    def _apply_one(self, migration: Migration) -> None:
        logger.info("Applying migration %s (%s).", migration.migration_id, migration.name)
        try:
            with self._db.transaction():
                for statement in migration.statements:
                    self._db.execute(statement)
                self._ledger.record_applied(migration.migration_id, migration.name)
        except Exception as exc:
            logger.exception("Migration %s (%s) failed and was rolled back.", migration.migration_id, migration.name)
            raise MigrationError(
                f"Migration {migration.migration_id} ({migration.name}) failed: {exc}",
                migration_id=migration.migration_id,
                name=migration.name,
            ) from exc
        logger.info("Applied migration %s (%s).", migration.migration_id, migration.name)
