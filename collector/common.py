"""Shared database protocol and small helpers for collector modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ContextManager, Mapping, Optional, Protocol, Sequence


class CollectorDatabase(Protocol):
    """Minimal DB protocol used by schema and ingestion modules."""

    def fetch_one(self, sql: str, params: Mapping[str, Any] | None = None) -> Optional[Mapping[str, Any]]:
        """Fetch one row."""

    def fetch_all(self, sql: str, params: Mapping[str, Any] | None = None) -> Sequence[Mapping[str, Any]]:
        """Fetch rows."""

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> int:
        """Execute a statement and return the affected row count."""

    def transaction(self) -> ContextManager[None]:
        """Open a transaction, or a savepoint when one is already open."""


@dataclass(frozen=True)
class UtcClock:
    """Injectable UTC clock for deterministic testing."""

    def now_utc(self) -> datetime:
        """Return current UTC timestamp."""
        return datetime.now(tz=timezone.utc)


def utc_iso(ts: datetime) -> str:
    """Normalize timestamp to UTC RFC3339 string."""
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

