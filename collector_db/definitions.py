"""Value objects describing versioned migrations and replaceable database objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import sqlparse

from collector_db.enums import ObjectKind

logger = logging.getLogger(__name__)


def split_sql_statements(script: str) -> tuple[str, ...]:
    """Split a SQL script into non-empty statements."""
    return tuple(statement.strip() for statement in sqlparse.split(script) if statement.strip())


@dataclass(frozen=True)
class Migration:
    """Versioned, immutable schema change applied at most once."""

    migration_id: str
    name: str
    statements: tuple[str, ...]

    @classmethod
    def from_script(cls, migration_id: str, name: str, script: str) -> "Migration":
        statements = split_sql_statements(script)
        if not statements:
            raise ValueError(f"Migration {migration_id} ({name}) has no statements")
        return cls(migration_id=migration_id, name=name, statements=statements)


@dataclass(frozen=True)
class ReplaceableObject:
    """Derived object recreated on every startup; carries no ledger state.

    ``depends_on`` names objects that must appear earlier in the refresh order.
    """

    name: str
    kind: ObjectKind
    statements: tuple[str, ...]
    depends_on: tuple[str, ...] = ()
