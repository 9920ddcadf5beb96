"""Fetch and upsert historical price bars per instrument."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Iterable, Mapping, Optional, Sequence

from collector.common import CollectorDatabase
from collector.ingest.report import SeriesResult
from collector.providers.contract import MarketDataProvider, ProviderInstrument, SeriesBar
from collector_db.enums import AssetClass

logger = logging.getLogger(__name__)

# Only rows whose values actually change are counted; an unchanged re-fetch writes nothing.
UPSERT_PRICE_BAR_SQL = """
INSERT INTO price_bar (
    instrument_id, bar_ts_utc,
    open_price, high_price, low_price, close_price,
    volume, provider_id
) VALUES (
    :instrument_id, :bar_ts_utc,
    :open_price, :high_price, :low_price, :close_price,
    :volume, :provider_id
)
ON CONFLICT (instrument_id, bar_ts_utc) DO UPDATE
SET open_price = EXCLUDED.open_price,
    high_price = EXCLUDED.high_price,
    low_price = EXCLUDED.low_price,
    close_price = EXCLUDED.close_price,
    volume = EXCLUDED.volume,
    provider_id = EXCLUDED.provider_id
WHERE (price_bar.open_price, price_bar.high_price, price_bar.low_price, price_bar.close_price, price_bar.volume)
    IS DISTINCT FROM
    (EXCLUDED.open_price, EXCLUDED.high_price, EXCLUDED.low_price, EXCLUDED.close_price, EXCLUDED.volume)
"""


def latest_bar_ts(db: CollectorDatabase, instrument_id: int) -> Optional[datetime]:
    row = db.fetch_one(
        """
        SELECT max(bar_ts_utc) AS latest_ts
        FROM price_bar
        WHERE instrument_id = :instrument_id
        """,
        {"instrument_id": instrument_id},
    )
    if row is None:
        return None
    return row.get("latest_ts")


def upsert_bars(db: CollectorDatabase, *, instrument_id: int, provider_id: int, bars: Iterable[SeriesBar]) -> int:
    """Upsert bars keyed by ``(instrument_id, bar_ts_utc)``; bars without a close are skipped."""
    written = 0
    for bar in bars:
        if bar.close_price is None:
            continue
        affected = db.execute(
            UPSERT_PRICE_BAR_SQL,
            {
                "instrument_id": instrument_id,
                "bar_ts_utc": bar.bar_ts_utc,
                "open_price": bar.open_price,
                "high_price": bar.high_price,
                "low_price": bar.low_price,
                "close_price": bar.close_price,
                "volume": bar.volume,
                "provider_id": provider_id,
            },
        )
        written += max(affected, 0)
    return written


def _fetch_bars(provider: MarketDataProvider, instrument: ProviderInstrument, range_hint: Optional[datetime]) -> list[SeriesBar]:
    return list(provider.fetch_series(instrument, range_hint))


@dataclass
class _ScheduledFetch:
    instrument: ProviderInstrument
    instrument_id: Optional[int]
    future: Optional[Future[list[SeriesBar]]] = None
    error: Optional[str] = None


class SeriesIngestor:
    """Series ingestion with per-instrument isolation.

    Provider fetches run on a bounded thread pool; all database work stays on
    the calling thread, one transaction per instrument.
    """

    def __init__(
        self,
        *,
        db: CollectorDatabase,
        provider: MarketDataProvider,
        provider_id: int,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._db = db
        self._provider = provider
        self._provider_id = provider_id
        self._max_workers = max_workers

    def _write(self, instrument_id: int, bars: Sequence[SeriesBar]) -> int:
        with self._db.transaction():
            return upsert_bars(self._db, instrument_id=instrument_id, provider_id=self._provider_id, bars=bars)

    def ingest_series(self, instrument: ProviderInstrument, instrument_id: int) -> int:
        """Fetch and upsert one instrument's series; errors propagate."""
        range_hint = latest_bar_ts(self._db, instrument_id)
        bars = _fetch_bars(self._provider, instrument, range_hint)
        return self._write(instrument_id, bars)

    def _schedule(self, pool: ThreadPoolExecutor, instrument: ProviderInstrument, instrument_id: Optional[int]) -> _ScheduledFetch:
        scheduled = _ScheduledFetch(instrument=instrument, instrument_id=instrument_id)
        if instrument_id is None:
            scheduled.error = "instrument is not in the catalog"
            return scheduled
        try:
            range_hint = latest_bar_ts(self._db, instrument_id)
        except Exception as exc:
            scheduled.error = f"range hint lookup failed: {exc}"
            return scheduled
        scheduled.future = pool.submit(_fetch_bars, self._provider, instrument, range_hint)
        return scheduled

    def _complete(self, asset_class: AssetClass, scheduled: _ScheduledFetch) -> SeriesResult:
        symbol = scheduled.instrument.symbol
        if scheduled.error is not None:
            logger.warning("Series ingestion skipped for %s:%s: %s.", asset_class.value, symbol, scheduled.error)
            return SeriesResult(symbol=symbol, rows_upserted=0, error=scheduled.error)

        future, instrument_id = scheduled.future, scheduled.instrument_id
        if future is None or instrument_id is None:
            raise RuntimeError(f"Fetch for {symbol} was never scheduled")
        try:
            bars = future.result()
            rows = self._write(instrument_id, bars)
        except Exception as exc:
            logger.warning("Series ingestion failed for %s:%s.", asset_class.value, symbol, exc_info=True)
            return SeriesResult(symbol=symbol, rows_upserted=0, error=str(exc) or type(exc).__name__)

        logger.info("Upserted %d rows for %s:%s.", rows, asset_class.value, symbol)
        return SeriesResult(symbol=symbol, rows_upserted=rows)

    def ingest_all(
        self,
        asset_class: AssetClass,
        instruments: Sequence[ProviderInstrument],
        instrument_ids: Mapping[str, int],
    ) -> tuple[SeriesResult, ...]:
        """Ingest every instrument; failures report zero rows and never abort the batch.

        Results keep the order of ``instruments``.
        """
        if not instruments:
            return ()
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="series-fetch") as pool:
            scheduled = [
                self._schedule(pool, instrument, instrument_ids.get(instrument.symbol.upper()))
                for instrument in instruments
            ]
            return tuple(self._complete(asset_class, item) for item in scheduled)
