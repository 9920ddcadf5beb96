"""Static checks over the migration sequence and replaceable object catalog."""

from __future__ import annotations

import re

import pytest

from collector.schema.migration_runner import validate_migration_order
from collector.schema.refresher import validate_refresh_order
from collector_db.definitions import Migration, split_sql_statements
from collector_db.enums import ObjectKind
from collector_db.migrations import MIGRATIONS
from collector_db.replaceable import REPLACEABLE_OBJECTS


def test_split_sql_statements_keeps_dollar_quoted_bodies_intact() -> None:
    script = """
    CREATE TABLE t (id INT);
    CREATE FUNCTION f() RETURNS trigger LANGUAGE plpgsql AS $$
    BEGIN
        NEW.id := 1;
        RETURN NEW;
    END;
    $$;

    """
    statements = split_sql_statements(script)
    assert len(statements) == 2
    assert statements[0].startswith("CREATE TABLE t")
    assert "RETURN NEW;" in statements[1]


def test_migration_from_script_rejects_empty_script() -> None:
    with pytest.raises(ValueError, match="has no statements"):
        Migration.from_script("0099", "empty", "   \n  ")


def test_migration_sequence_is_strictly_ascending_and_named() -> None:
    validate_migration_order(MIGRATIONS)
    ids = [migration.migration_id for migration in MIGRATIONS]
    assert ids == sorted(set(ids))
    assert all(migration.name.strip() for migration in MIGRATIONS)
    assert all(migration.statements for migration in MIGRATIONS)


def test_views_and_functions_live_only_in_replaceable_objects() -> None:
    pattern = re.compile(r"\bCREATE\s+(OR\s+REPLACE\s+)?(VIEW|FUNCTION|TRIGGER)\b", re.I)
    offending = [
        f"{migration.migration_id}: {statement.splitlines()[0]}"
        for migration in MIGRATIONS
        for statement in migration.statements
        if pattern.search(statement)
    ]
    assert offending == []


def test_replaceable_catalog_is_in_dependency_order() -> None:
    validate_refresh_order(REPLACEABLE_OBJECTS)
    names = [obj.name for obj in REPLACEABLE_OBJECTS]
    assert names.index("fn_touch_updated_at") < names.index("trg_instrument_touch_updated_at")
    assert names.index("v_price_bar_daily_return") < names.index("v_instrument_latest_bar")


def test_replaceable_statements_are_rerunnable() -> None:
    for obj in REPLACEABLE_OBJECTS:
        creates = [s for s in obj.statements if re.search(r"\bCREATE\b", s, re.I)]
        assert creates, obj.name
        if obj.kind is ObjectKind.TRIGGER:
            assert any("DROP TRIGGER IF EXISTS" in s for s in obj.statements), obj.name
        else:
            assert all("CREATE OR REPLACE" in s for s in creates), obj.name
