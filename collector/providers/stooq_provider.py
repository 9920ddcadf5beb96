"""Stooq-backed daily series provider with a static watch list."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
import io
import logging
import threading
from typing import Any, Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from collector.common import UtcClock
from collector.errors import ProviderRequestError, ProviderUnavailableError
from collector.providers.contract import CurrencySpec, ExchangeSpec, ProviderInstrument, SeriesBar
from collector_db.enums import AssetClass

logger = logging.getLogger(__name__)

MAX_ROWS_PER_SERIES = 60

CURRENCIES: tuple[CurrencySpec, ...] = (
    CurrencySpec(code="USD", name="US Dollar", decimals=2),
    CurrencySpec(code="EUR", name="Euro", decimals=2),
    CurrencySpec(code="HUF", name="Hungarian Forint", decimals=2),
)

EXCHANGES: tuple[ExchangeSpec, ...] = (
    ExchangeSpec(code="NASDAQ", name="NASDAQ", country="US", timezone="America/New_York", mic="XNAS"),
)


def _equity(symbol: str, name: str, stooq_symbol: str) -> ProviderInstrument:
    return ProviderInstrument(
        asset_class=AssetClass.EQUITY,
        symbol=symbol,
        provider_symbol=stooq_symbol,
        name=name,
        exchange_code="NASDAQ",
        currency_code="USD",
    )


def _fx(base: str, quote: str) -> ProviderInstrument:
    return ProviderInstrument(
        asset_class=AssetClass.FX,
        symbol=f"{base}{quote}",
        provider_symbol=f"{base}{quote}".lower(),
        name=f"{base}/{quote}",
        currency_code=quote,
        base_currency=base,
        quote_currency=quote,
    )


EQUITY_WATCHLIST: tuple[ProviderInstrument, ...] = (
    _equity("AAPL", "Apple Inc.", "aapl.us"),
    _equity("MSFT", "Microsoft Corporation", "msft.us"),
    _equity("GOOGL", "Alphabet Inc. Class A", "googl.us"),
    _equity("AMZN", "Amazon.com, Inc.", "amzn.us"),
    _equity("NVDA", "NVIDIA Corporation", "nvda.us"),
    _equity("META", "Meta Platforms, Inc.", "meta.us"),
    _equity("TSLA", "Tesla, Inc.", "tsla.us"),
)

FX_WATCHLIST: tuple[ProviderInstrument, ...] = (
    _fx("EUR", "USD"),
    _fx("USD", "HUF"),
    _fx("EUR", "HUF"),
)


def _parse_numeric(value: Any) -> Decimal | None:
    if value is None:
        return None
    text = str(value).strip()
    if text == "" or text.lower() == "nan":
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def parse_stooq_csv(body: str) -> list[SeriesBar]:
    """Parse a Stooq daily CSV payload into bars sorted by timestamp.

    Stooq answers unknown symbols with a plain ``No data`` line, which parses
    to an empty list rather than an error.
    """
    try:
        import pandas as pd
    except ImportError as exc:
        raise RuntimeError("pandas is required for Stooq CSV parsing") from exc

    text = body.strip()
    if not text:
        return []

    frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    frame.columns = [str(column).strip().lower() for column in frame.columns]
    if "date" not in frame.columns:
        return []

    bars: list[SeriesBar] = []
    for record in frame.to_dict(orient="records"):
        date_text = str(record.get("date", "")).strip()
        if not date_text or date_text == "0000-00-00":
            continue
        try:
            ts = datetime.strptime(date_text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            continue
        bars.append(
            SeriesBar(
                bar_ts_utc=ts,
                open_price=_parse_numeric(record.get("open")),
                high_price=_parse_numeric(record.get("high")),
                low_price=_parse_numeric(record.get("low")),
                close_price=_parse_numeric(record.get("close")),
                volume=_parse_numeric(record.get("volume")),
            )
        )
    bars.sort(key=lambda item: item.bar_ts_utc)
    return bars


class StooqProvider:
    """Stooq adapter with bounded retries and a per-minute request budget."""

    provider_code = "stooq"
    provider_name = "Stooq Free Data"

    def __init__(
        self,
        *,
        base_url: str = "https://stooq.com",
        request_budget_per_minute: int = 120,
        max_rows_per_series: int = MAX_ROWS_PER_SERIES,
        timeout_seconds: float = 20.0,
        equities: Sequence[ProviderInstrument] = EQUITY_WATCHLIST,
        fx_pairs: Sequence[ProviderInstrument] = FX_WATCHLIST,
        requester: Optional[Callable[[str, dict[str, Any]], str]] = None,
        clock: UtcClock | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._request_budget_per_minute = request_budget_per_minute
        self._max_rows_per_series = max_rows_per_series
        self._timeout_seconds = timeout_seconds
        self._watchlists: dict[AssetClass, tuple[ProviderInstrument, ...]] = {
            AssetClass.EQUITY: tuple(equities),
            AssetClass.FX: tuple(fx_pairs),
        }
        self._requester = requester
        self._clock = clock or UtcClock()
        self._lock = threading.Lock()
        self._call_count = 0
        self._window_minute_utc: datetime | None = None
        self._window_call_count = 0

    @property
    def call_count(self) -> int:
        """Return provider request call count."""
        return self._call_count

    def _guard_budget(self) -> None:
        with self._lock:
            now_minute = self._clock.now_utc().replace(second=0, microsecond=0)
            if self._window_minute_utc != now_minute:
                self._window_minute_utc = now_minute
                self._window_call_count = 0
            if self._window_call_count >= self._request_budget_per_minute:
                raise ProviderRequestError("Stooq request budget exceeded for current minute")
            self._call_count += 1
            self._window_call_count += 1

    def _request_text(self, path: str, params: dict[str, Any]) -> str:
        self._guard_budget()
        if self._requester is not None:
            return self._requester(path, params)

        request = Request(
            url=f"{self.base_url}{path}?{urlencode(params)}",
            headers={"User-Agent": "market-data-collector/0.1"},
            method="GET",
        )

        last_error: Exception | None = None
        for _ in range(3):
            try:
                with urlopen(request, timeout=self._timeout_seconds) as response:
                    return response.read().decode("utf-8")
            except (HTTPError, URLError, TimeoutError) as exc:
                last_error = exc
                continue

        if last_error is None:
            raise ProviderRequestError("Stooq request failed without an exception")
        raise ProviderRequestError(f"Stooq request failed after retries: {last_error}") from last_error

    def list_instruments(self, asset_class: AssetClass) -> Sequence[ProviderInstrument]:
        # Stooq has no catalog endpoint; the watch list is the reference set.
        if asset_class not in self._watchlists:
            raise ProviderUnavailableError(f"Stooq does not serve asset class {asset_class}")
        return self._watchlists[asset_class]

    def fetch_series(self, instrument: ProviderInstrument, range_hint: Optional[datetime] = None) -> list[SeriesBar]:
        body = self._request_text("/q/d/l/", {"s": instrument.provider_symbol, "i": "d"})
        bars = parse_stooq_csv(body)[-self._max_rows_per_series:]
        if range_hint is not None:
            bars = [bar for bar in bars if bar.bar_ts_utc >= range_hint]
        logger.debug("Fetched %d bars for %s from Stooq.", len(bars), instrument.provider_symbol)
        return bars

    def list_currencies(self) -> Sequence[CurrencySpec]:
        return CURRENCIES

    def list_exchanges(self) -> Sequence[ExchangeSpec]:
        return EXCHANGES
