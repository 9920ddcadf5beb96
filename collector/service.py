"""Collector run lifecycle: schema initialization followed by ingestion.

Each stage transition is logged explicitly; there is no event bus.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import logging
from typing import Any, Sequence
from uuid import uuid4

from collector.common import CollectorDatabase
from collector.errors import SchemaError
from collector.ingest.orchestrator import IngestionOrchestrator
from collector.ingest.report import IngestionReport
from collector.providers.contract import MarketDataProvider
from collector.schema.migration_runner import MigrationRunner
from collector.schema.refresher import ReplaceableObjectRefresher
from collector_db.definitions import Migration, ReplaceableObject
from collector_db.migrations import MIGRATIONS
from collector_db.replaceable import REPLACEABLE_OBJECTS

logger = logging.getLogger(__name__)


class RunStage(str, enum.Enum):
    """Per-run lifecycle stage."""

    IDLE = "IDLE"
    MIGRATING_SCHEMA = "MIGRATING_SCHEMA"
    REFRESHING_OBJECTS = "REFRESHING_OBJECTS"
    RECONCILING_REFERENCE_DATA = "RECONCILING_REFERENCE_DATA"
    INGESTING_SERIES = "INGESTING_SERIES"
    REPORTED = "REPORTED"
    FAILED = "FAILED"


_FATAL_STAGES: frozenset[RunStage] = frozenset({RunStage.MIGRATING_SCHEMA, RunStage.REFRESHING_OBJECTS})


@dataclass(frozen=True)
class SchemaInitResult:
    """Names of migrations applied and replaceable objects refreshed."""

    applied_migrations: tuple[str, ...]
    refreshed_objects: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "appliedMigrations": list(self.applied_migrations),
            "refreshedObjects": list(self.refreshed_objects),
        }


class CollectorService:
    """Process entry contract: ``initialize_schema`` and ``collect_reference_data_and_series``."""

    def __init__(
        self,
        *,
        db: CollectorDatabase,
        provider: MarketDataProvider | None = None,
        migrations: Sequence[Migration] = MIGRATIONS,
        replaceable_objects: Sequence[ReplaceableObject] = REPLACEABLE_OBJECTS,
        max_workers: int = 1,
    ) -> None:
        self._db = db
        self._provider = provider
        self._migrations = tuple(migrations)
        self._replaceable_objects = tuple(replaceable_objects)
        self._max_workers = max_workers
        self._stage = RunStage.IDLE

    @property
    def stage(self) -> RunStage:
        return self._stage

    def _transition(self, stage: RunStage) -> None:
        logger.info("Collector stage %s -> %s.", self._stage.value, stage.value)
        self._stage = stage

    def _fail(self, exc: Exception) -> None:
        if self._stage not in _FATAL_STAGES:
            return
        logger.error("Collector failed during %s: %s", self._stage.value, exc)
        self._transition(RunStage.FAILED)

    def initialize_schema(self) -> SchemaInitResult:
        """Apply pending migrations, then refresh every replaceable object."""
        self._transition(RunStage.MIGRATING_SCHEMA)
        try:
            applied = MigrationRunner(self._db, self._migrations).apply_pending()
        except SchemaError as exc:
            self._fail(exc)
            raise

        self._transition(RunStage.REFRESHING_OBJECTS)
        try:
            refreshed = ReplaceableObjectRefresher(self._db, self._replaceable_objects).refresh_all()
        except SchemaError as exc:
            self._fail(exc)
            raise

        result = SchemaInitResult(applied_migrations=tuple(applied), refreshed_objects=tuple(refreshed))
        logger.info(
            "Schema initialized: %d migrations applied, %d objects refreshed.",
            len(result.applied_migrations),
            len(result.refreshed_objects),
        )
        return result

    def collect_reference_data_and_series(self) -> IngestionReport:
        """Reconcile reference data and ingest series; per-symbol failures are reported, not raised."""
        if self._stage is RunStage.FAILED:
            raise SchemaError("Ingestion is not allowed after a failed schema stage")
        if self._provider is None:
            raise RuntimeError("A market-data provider is required for ingestion")

        orchestrator = IngestionOrchestrator(db=self._db, provider=self._provider, max_workers=self._max_workers)
        self._transition(RunStage.RECONCILING_REFERENCE_DATA)
        snapshot = orchestrator.reconcile_reference_data()
        self._transition(RunStage.INGESTING_SERIES)
        report = orchestrator.ingest_series(snapshot)
        self._transition(RunStage.REPORTED)
        if report.failed_symbols:
            logger.warning("Ingestion finished with failed symbols: %s", ", ".join(report.failed_symbols))
        return report

    def run(self) -> tuple[SchemaInitResult, IngestionReport]:
        schema = self.initialize_schema()
        return schema, self.collect_reference_data_and_series()

    def verify_schema_idempotency(self) -> SchemaInitResult:
        """Install the schema twice into a scratch schema; the second pass must apply nothing.

        The live search_path is restored and the scratch schema dropped afterwards,
        so the check never depends on what the live database already holds.
        """
        scratch = f"collector_verify_{uuid4().hex[:12]}"
        row = self._db.fetch_one("SELECT current_setting('search_path') AS search_path")
        live_search_path = str(row["search_path"]) if row is not None else "public"

        logger.info("Verifying schema idempotency in scratch schema %s.", scratch)
        self._db.execute(f'CREATE SCHEMA "{scratch}"')
        try:
            self._db.fetch_one(
                "SELECT set_config('search_path', :search_path, false) AS search_path",
                {"search_path": f'"{scratch}"'},
            )
            first = self.initialize_schema()
            if len(first.applied_migrations) != len(self._migrations):
                raise SchemaError(
                    f"First schema pass applied {len(first.applied_migrations)} of {len(self._migrations)} migrations"
                )
            second = self.initialize_schema()
            if second.applied_migrations:
                raise SchemaError(f"Second schema pass applied migrations: {list(second.applied_migrations)}")
        finally:
            self._db.fetch_one(
                "SELECT set_config('search_path', :search_path, false) AS search_path",
                {"search_path": live_search_path},
            )
            self._db.execute(f'DROP SCHEMA IF EXISTS "{scratch}" CASCADE')
            logger.info("Dropped scratch schema %s.", scratch)

        logger.info("Schema initialization is idempotent.")
        return second
