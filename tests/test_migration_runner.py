"""Unit tests for the migration ledger and runner."""

from __future__ import annotations

import pytest

from collector.errors import LedgerError, MigrationError
from collector.schema.ledger import MigrationLedger
from collector.schema.migration_runner import MigrationRunner, validate_migration_order
from collector_db.definitions import Migration
from tests.utils.fake_db import FakeDB
from tests.utils.memory_ledger import InMemoryLedger


def _migrations() -> tuple[Migration, ...]:
    return (
        Migration("0001", "create widget", ("CREATE TABLE widget (id INT)",)),
        Migration("0002", "add widget label", ("ALTER TABLE widget ADD COLUMN label TEXT",)),
        Migration("0003", "create gadget", ("CREATE TABLE gadget (id INT)", "CREATE INDEX idx_gadget ON gadget (id)")),
    )


def test_apply_pending_runs_every_migration_once_in_order() -> None:
    db = FakeDB()
    ledger = InMemoryLedger(db)
    runner = MigrationRunner(db, _migrations(), ledger=ledger)

    applied = runner.apply_pending()

    assert applied == ["create widget", "add widget label", "create gadget"]
    ddl = [sql for sql, _ in db.committed if "INSERT INTO schema_migration_ledger" not in sql]
    assert ddl == [
        "CREATE TABLE widget (id INT)",
        "ALTER TABLE widget ADD COLUMN label TEXT",
        "CREATE TABLE gadget (id INT)",
        "CREATE INDEX idx_gadget ON gadget (id)",
    ]
    assert db.events == ["BEGIN", "COMMIT"] * 3
    assert [entry.migration_id for entry in ledger.list_applied()] == ["0001", "0002", "0003"]


def test_second_run_is_a_no_op() -> None:
    db = FakeDB()
    ledger = InMemoryLedger(db)
    runner = MigrationRunner(db, _migrations(), ledger=ledger)
    runner.apply_pending()
    executed_after_first = len(db.executed)

    assert runner.apply_pending() == []
    assert len(db.executed) == executed_after_first
    assert ledger.ensure_calls == 2


def test_already_applied_prefix_is_skipped() -> None:
    db = FakeDB()
    ledger = InMemoryLedger(db, applied=("0001", "0002"))

    applied = MigrationRunner(db, _migrations(), ledger=ledger).apply_pending()

    assert applied == ["create gadget"]
    assert all("widget" not in sql for sql, _ in db.executed)


def test_failed_migration_rolls_back_and_stops_the_run() -> None:
    db = FakeDB()
    db.fail_when("ALTER TABLE widget", RuntimeError("column label already exists"))
    ledger = InMemoryLedger(db)
    runner = MigrationRunner(db, _migrations(), ledger=ledger)

    with pytest.raises(MigrationError) as excinfo:
        runner.apply_pending()

    assert excinfo.value.migration_id == "0002"
    assert excinfo.value.name == "add widget label"
    assert [entry.migration_id for entry in ledger.list_applied()] == ["0001"]
    assert not db.committed_sql("ALTER TABLE widget")
    assert not any("gadget" in sql for sql, _ in db.executed)
    assert db.events == ["BEGIN", "COMMIT", "BEGIN", "ROLLBACK"]


def test_ledger_insert_failure_rolls_back_the_migration_statements() -> None:
    db = FakeDB()
    db.fail_when("INSERT INTO schema_migration_ledger", RuntimeError("disk full"))
    runner = MigrationRunner(db, _migrations()[:1], ledger=InMemoryLedger(db))

    with pytest.raises(MigrationError, match="disk full"):
        runner.apply_pending()

    assert db.committed == []


def test_runner_rejects_out_of_order_migrations() -> None:
    first, second, third = _migrations()
    with pytest.raises(MigrationError, match="strictly ascending"):
        validate_migration_order((first, third, second))
    with pytest.raises(MigrationError, match="strictly ascending"):
        MigrationRunner(FakeDB(), (first, first))


def test_ledger_with_unknown_migration_is_rejected() -> None:
    db = FakeDB()
    ledger = InMemoryLedger(db, applied=("0001", "0009"))

    with pytest.raises(LedgerError, match="unknown migrations"):
        MigrationRunner(db, _migrations(), ledger=ledger).apply_pending()
    assert db.executed == []


def test_pending_migration_older_than_applied_one_is_rejected() -> None:
    db = FakeDB()
    ledger = InMemoryLedger(db, applied=("0001", "0003"))

    with pytest.raises(LedgerError, match=r"\['0002'\] precede"):
        MigrationRunner(db, _migrations(), ledger=ledger).apply_pending()


def test_ledger_table_creation_failure_is_fatal() -> None:
    db = FakeDB()
    db.fail_when("CREATE TABLE IF NOT EXISTS schema_migration_ledger", RuntimeError("permission denied"))

    with pytest.raises(LedgerError, match="could not be created"):
        MigrationRunner(db, _migrations()).apply_pending()
    assert db.events == ["BEGIN", "ROLLBACK"]


def test_ledger_read_failure_is_fatal() -> None:
    db = FakeDB()
    db.fail_when("FROM schema_migration_ledger", RuntimeError("relation does not exist"))

    with pytest.raises(LedgerError, match="could not be read"):
        MigrationLedger(db).list_applied()
    with pytest.raises(LedgerError, match="could not be read"):
        MigrationLedger(db).has_applied("0001")


def test_table_exists_inspects_without_creating() -> None:
    db = FakeDB()
    db.set_one("to_regclass", {"present": False})
    assert MigrationLedger(db).table_exists() is False
    assert db.executed == []

    db.set_one("to_regclass", {"present": True})
    assert MigrationLedger(db).table_exists() is True


def test_table_inspection_failure_is_fatal() -> None:
    db = FakeDB()
    db.fail_when("to_regclass", RuntimeError("connection reset"))

    with pytest.raises(LedgerError, match="could not be inspected"):
        MigrationLedger(db).table_exists()


def test_sql_ledger_maps_rows_and_records_inside_caller_transaction() -> None:
    db = FakeDB()
    db.set_all(
        "FROM schema_migration_ledger",
        [{"migration_id": "0001", "name": "create widget", "applied_at_utc": None}],
    )
    ledger = MigrationLedger(db)

    entries = ledger.list_applied()
    assert [(e.migration_id, e.name) for e in entries] == [("0001", "create widget")]
    assert ledger.has_applied("0001") is True

    with db.transaction():
        ledger.record_applied("0002", "add widget label")
    assert db.committed_sql("INSERT INTO schema_migration_ledger")[0][1] == {
        "migration_id": "0002",
        "name": "add widget label",
    }
