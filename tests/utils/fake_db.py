"""In-memory DB double for collector unit tests."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union

OneResponse = Union[Mapping[str, Any], None, Callable[[Mapping[str, Any]], Optional[Mapping[str, Any]]]]
AllResponse = Union[Sequence[Mapping[str, Any]], Callable[[Mapping[str, Any]], Sequence[Mapping[str, Any]]]]


class FakeDB:
    """Marker-based DB double that also models transaction/savepoint scoping.

    ``executed`` holds every attempted statement; ``committed`` only those whose
    enclosing transaction committed.
    """

    def __init__(self) -> None:
        self.executed: list[tuple[str, dict[str, Any]]] = []
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.committed: list[tuple[str, dict[str, Any]]] = []
        self.events: list[str] = []
        self.one_responses: dict[str, OneResponse] = {}
        self.all_responses: dict[str, AllResponse] = {}
        self.rowcounts: dict[str, Union[int, Callable[[Mapping[str, Any]], int]]] = {}
        self.failures: dict[str, Exception] = {}
        self._buffers: list[list[tuple[str, dict[str, Any]]]] = []

    def set_one(self, marker: str, value: OneResponse) -> None:
        self.one_responses[marker] = value

    def set_all(self, marker: str, value: AllResponse) -> None:
        self.all_responses[marker] = value

    def set_rowcount(self, marker: str, value: Union[int, Callable[[Mapping[str, Any]], int]]) -> None:
        self.rowcounts[marker] = value

    def fail_when(self, marker: str, exc: Exception) -> None:
        self.failures[marker] = exc

    def _maybe_fail(self, sql: str) -> None:
        for marker, exc in self.failures.items():
            if marker in sql:
                raise exc

    def fetch_one(self, sql: str, params: Mapping[str, Any] | None = None) -> Optional[Mapping[str, Any]]:
        self._maybe_fail(sql)
        bound = dict(params or {})
        self.queries.append((sql, bound))
        for marker, value in self.one_responses.items():
            if marker in sql:
                return value(bound) if callable(value) else value
        rows = self._match_all(sql, bound)
        return rows[0] if rows else None

    def fetch_all(self, sql: str, params: Mapping[str, Any] | None = None) -> Sequence[Mapping[str, Any]]:
        self._maybe_fail(sql)
        bound = dict(params or {})
        self.queries.append((sql, bound))
        return self._match_all(sql, bound)

    def _match_all(self, sql: str, bound: dict[str, Any]) -> list[Mapping[str, Any]]:
        for marker, value in self.all_responses.items():
            if marker in sql:
                return list(value(bound) if callable(value) else value)
        return []

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> int:
        self._maybe_fail(sql)
        entry = (sql, dict(params or {}))
        self.executed.append(entry)
        if self._buffers:
            self._buffers[-1].append(entry)
        else:
            self.committed.append(entry)
        for marker, value in self.rowcounts.items():
            if marker in sql:
                return value(entry[1]) if callable(value) else value
        return 1

    @contextmanager
    def transaction(self) -> Iterator[None]:
        outermost = not self._buffers
        self.events.append("BEGIN" if outermost else "SAVEPOINT")
        self._buffers.append([])
        try:
            yield
        except Exception:
            self._buffers.pop()
            self.events.append("ROLLBACK" if outermost else "ROLLBACK TO SAVEPOINT")
            raise
        buffered = self._buffers.pop()
        if outermost:
            self.committed.extend(buffered)
            self.events.append("COMMIT")
        else:
            self._buffers[-1].extend(buffered)
            self.events.append("RELEASE SAVEPOINT")

    def committed_sql(self, marker: str) -> list[tuple[str, dict[str, Any]]]:
        return [entry for entry in self.committed if marker in entry[0]]


def build_catalog_db(provider_id: int = 1) -> FakeDB:
    """FakeDB that keeps a tiny instrument catalog so reconcile and ingest can chain."""
    db = FakeDB()
    catalog: dict[tuple[str, str], dict[str, Any]] = {}

    def _insert(params: Mapping[str, Any]) -> dict[str, Any]:
        instrument_id = len(catalog) + 1
        catalog[(params["asset_class"], params["symbol"])] = {"instrument_id": instrument_id, **params}
        return {"instrument_id": instrument_id}

    db.set_one("RETURNING provider_id", {"provider_id": provider_id})
    db.set_one("RETURNING instrument_id", _insert)
    db.set_one("FROM instrument", lambda params: catalog.get((params["asset_class"], params["symbol"])))
    db.set_one("max(bar_ts_utc)", {"latest_ts": None})
    db.set_all(
        "SELECT instrument_id, symbol",
        lambda params: [row for (asset_class, _), row in catalog.items() if asset_class == params["asset_class"]],
    )
    return db


class PriceBarStore:
    """Keyed price_bar rows behind a FakeDB, with the upsert's changed-rows-only count."""

    _VALUE_KEYS = ("open_price", "high_price", "low_price", "close_price", "volume")

    def __init__(self, db: FakeDB) -> None:
        self.rows: dict[tuple[int, Any], dict[str, Any]] = {}
        db.set_rowcount("INSERT INTO price_bar", self._upsert)
        db.set_one("max(bar_ts_utc)", self._latest)

    def _upsert(self, params: Mapping[str, Any]) -> int:
        key = (params["instrument_id"], params["bar_ts_utc"])
        values = {name: params[name] for name in self._VALUE_KEYS}
        stored = self.rows.get(key)
        if stored is not None and all(stored[name] == values[name] for name in self._VALUE_KEYS):
            return 0
        self.rows[key] = {**values, "provider_id": params["provider_id"]}
        return 1

    def _latest(self, params: Mapping[str, Any]) -> dict[str, Any]:
        stamps = [ts for (instrument_id, ts) in self.rows if instrument_id == params["instrument_id"]]
        return {"latest_ts": max(stamps) if stamps else None}
