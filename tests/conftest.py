"""Pytest fixtures shared across unit and integration tests."""

from __future__ import annotations

import os
from typing import Any, Iterator
from uuid import uuid4

import psycopg
import pytest

from collector.connection import ConnectionManager
from tests.utils.fake_db import FakeDB


def _integration_dsn() -> str | None:
    host = os.getenv("TEST_DB_HOST")
    port = os.getenv("TEST_DB_PORT")
    dbname = os.getenv("TEST_DB_NAME")
    user = os.getenv("TEST_DB_USER")
    password = os.getenv("TEST_DB_PASSWORD")
    if all([host, port, dbname, user, password]):
        return f"host={host} port={port} dbname={dbname} user={user} password={password}"
    return os.getenv("TEST_DATABASE_URL")


@pytest.fixture
def fake_db() -> FakeDB:
    return FakeDB()


@pytest.fixture
def collector_db() -> Iterator[ConnectionManager]:
    """Connection manager bound to a throwaway schema, dropped after the test."""
    dsn = _integration_dsn()
    if not dsn:
        pytest.skip("Integration DB env vars are missing; set TEST_DB_* or TEST_DATABASE_URL")

    schema = f"collector_test_{uuid4().hex[:12]}"

    def connect(conninfo: str, **kwargs: Any) -> psycopg.Connection[Any]:
        conn = psycopg.connect(conninfo, **kwargs)
        conn.execute(f'CREATE SCHEMA IF NOT EXISTS "{schema}"')
        conn.execute(f'SET search_path TO "{schema}"')
        return conn

    manager = ConnectionManager(dsn, connect=connect)
    try:
        yield manager
    finally:
        manager.close()
        with psycopg.connect(dsn, autocommit=True) as admin:
            admin.execute(f'DROP SCHEMA IF EXISTS "{schema}" CASCADE')
