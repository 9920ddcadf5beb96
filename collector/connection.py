"""Connection lifecycle for the collector's PostgreSQL store."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import re
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

import psycopg
from psycopg.rows import dict_row

from collector.errors import ConnectionClosedError

logger = logging.getLogger(__name__)

_NAMED_PARAM_RE = re.compile(r"(?<!:):([a-zA-Z_][a-zA-Z0-9_]*)")


def _convert_named_params(sql: str) -> str:
    """Convert :named params to psycopg %(named)s format."""
    return _NAMED_PARAM_RE.sub(r"%(\1)s", sql)


def _prepare(sql: str, params: Mapping[str, Any] | None) -> tuple[str, dict[str, Any] | None]:
    # Parameterless statements (DDL, plpgsql bodies) are passed through untouched.
    if not params:
        return sql, None
    return _convert_named_params(sql), dict(params)


class ConnectionManager:
    """Owns one lazily opened psycopg connection.

    The connection runs in autocommit mode; atomic units of work are scoped
    explicitly with :meth:`transaction`, which nests as savepoints.
    """

    def __init__(
        self,
        dsn: str,
        *,
        connect: Optional[Callable[..., psycopg.Connection[Any]]] = None,
    ) -> None:
        self._dsn = dsn
        self._connect = connect or psycopg.connect
        self._conn: psycopg.Connection[Any] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> psycopg.Connection[Any]:
        """Return the live connection, opening it on first use."""
        if self._closed:
            raise ConnectionClosedError("Cannot acquire a database connection after the manager has been closed.")
        if self._conn is None:
            logger.info("Opening database connection.")
            self._conn = self._connect(self._dsn, autocommit=True)
        return self._conn

    def fetch_one(self, sql: str, params: Mapping[str, Any] | None = None) -> Optional[Mapping[str, Any]]:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def fetch_all(self, sql: str, params: Mapping[str, Any] | None = None) -> Sequence[Mapping[str, Any]]:
        query, bound = _prepare(sql, params)
        with self.acquire().cursor(row_factory=dict_row) as cur:
            cur.execute(query, bound)
            return [dict(row) for row in cur.fetchall()]

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> int:
        query, bound = _prepare(sql, params)
        with self.acquire().cursor() as cur:
            cur.execute(query, bound)
            return cur.rowcount

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit on success, roll back and re-raise on failure."""
        with self.acquire().transaction():
            yield

    def close(self) -> None:
        """Close the connection; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._conn is not None:
            logger.info("Closing database connection.")
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "ConnectionManager":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
