#!/usr/bin/env python3
"""Market-data collector CLI: schema initialization and reference/series ingestion."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any, Sequence

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from collector.common import utc_iso
from collector.config import CollectorConfig, load_collector_config
from collector.connection import ConnectionManager
from collector.errors import CollectorError
from collector.providers.registry import build_provider
from collector.schema.ledger import MigrationLedger
from collector.service import CollectorService
from collector_db.migrations import MIGRATIONS

logger = logging.getLogger("collector.cli")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, sort_keys=True))


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_service(args: argparse.Namespace, cfg: CollectorConfig, db: ConnectionManager) -> CollectorService:
    needs_provider = args.command in {"collect", "run"}
    return CollectorService(
        db=db,
        provider=build_provider(cfg) if needs_provider else None,
        max_workers=args.max_workers or cfg.max_workers,
    )


def _ledger_status(db: ConnectionManager) -> dict[str, Any]:
    ledger = MigrationLedger(db)
    # A fresh database has no ledger table yet: every migration is pending.
    entries = ledger.list_applied() if ledger.table_exists() else ()
    applied_ids = {entry.migration_id for entry in entries}
    return {
        "applied": [
            {
                "migrationId": entry.migration_id,
                "name": entry.name,
                "appliedAt": utc_iso(entry.applied_at_utc) if entry.applied_at_utc is not None else None,
            }
            for entry in entries
        ],
        "pending": [m.migration_id for m in MIGRATIONS if m.migration_id not in applied_ids],
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Market-data collector CLI")
    parser.add_argument("--dsn", help="PostgreSQL DSN (defaults to DATABASE_URL)")
    parser.add_argument("--log-level", help="Override COLLECTOR_LOG_LEVEL")
    parser.add_argument("--max-workers", type=int, default=None, help="Concurrent series fetches")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-schema", help="Apply pending migrations and refresh replaceable objects")
    subparsers.add_parser("collect", help="Reconcile reference data and ingest price series")
    subparsers.add_parser("run", help="init-schema followed by collect")
    subparsers.add_parser("status", help="List applied and pending migrations")
    subparsers.add_parser("verify-idempotency", help="Run schema initialization twice and check the second pass is a no-op")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.max_workers is not None and args.max_workers < 1:
        parser.error("--max-workers must be >= 1")

    cfg = load_collector_config()
    _configure_logging(args.log_level or cfg.log_level)

    db = ConnectionManager(args.dsn or cfg.database_url)
    try:
        service = _build_service(args, cfg, db)

        if args.command == "status":
            _print_json(_ledger_status(db))
            return 0

        if args.command == "init-schema":
            _print_json(service.initialize_schema().to_dict())
            return 0

        if args.command == "collect":
            _print_json(service.collect_reference_data_and_series().to_dict())
            return 0

        if args.command == "run":
            _print_json(service.initialize_schema().to_dict())
            if cfg.skip_ingest:
                logger.info("COLLECTOR_SKIP_INGEST is set; skipping ingestion.")
                return 0
            _print_json(service.collect_reference_data_and_series().to_dict())
            return 0

        if args.command == "verify-idempotency":
            _print_json(service.verify_schema_idempotency().to_dict())
            return 0

        raise SystemExit(f"Unknown command: {args.command}")
    except CollectorError as exc:
        logger.error("Collector encountered a fatal error: %s", exc)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
