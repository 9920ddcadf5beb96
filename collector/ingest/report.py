"""Per-run ingestion report returned to the caller; never persisted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class SeriesResult:
    """Rows written for one instrument; ``error`` is set when it was isolated as failed."""

    symbol: str
    rows_upserted: int
    error: Optional[str] = None


@dataclass(frozen=True)
class IngestionReport:
    """Structured result of one ingestion run."""

    provider_code: str
    equities: tuple[SeriesResult, ...]
    fx: tuple[SeriesResult, ...]

    @property
    def failed_symbols(self) -> tuple[str, ...]:
        return tuple(result.symbol for result in (*self.equities, *self.fx) if result.error is not None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "providerCode": self.provider_code,
            "equities": [{"symbol": r.symbol, "rowsUpserted": r.rows_upserted} for r in self.equities],
            "fx": [{"pair": r.symbol, "rowsUpserted": r.rows_upserted} for r in self.fx],
        }
