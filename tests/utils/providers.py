"""Scripted market-data provider doubles."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import threading
from typing import Mapping, Optional, Sequence

from collector.errors import ProviderRequestError, ProviderUnavailableError
from collector.providers.contract import CurrencySpec, ExchangeSpec, ProviderInstrument, SeriesBar
from collector_db.enums import AssetClass


def make_equity(symbol: str, name: str | None = None, exchange_code: str = "NASDAQ") -> ProviderInstrument:
    return ProviderInstrument(
        asset_class=AssetClass.EQUITY,
        symbol=symbol,
        provider_symbol=f"{symbol.lower()}.us",
        name=name or f"{symbol} Inc.",
        exchange_code=exchange_code,
        currency_code="USD",
    )


def make_fx(base: str, quote: str) -> ProviderInstrument:
    return ProviderInstrument(
        asset_class=AssetClass.FX,
        symbol=f"{base}{quote}",
        provider_symbol=f"{base}{quote}".lower(),
        name=f"{base}/{quote}",
        currency_code=quote,
        base_currency=base,
        quote_currency=quote,
    )


def make_bars(count: int, *, start: datetime | None = None, close: str = "100") -> list[SeriesBar]:
    origin = start or datetime(2026, 1, 5, tzinfo=timezone.utc)
    return [
        SeriesBar(
            bar_ts_utc=origin + timedelta(days=idx),
            open_price=Decimal(close),
            high_price=Decimal(close) + 1,
            low_price=Decimal(close) - 1,
            close_price=Decimal(close),
            volume=Decimal("1000"),
        )
        for idx in range(count)
    ]


class ScriptedProvider:
    """Provider double returning fixed bars per symbol, or raising for listed symbols."""

    provider_code = "X"
    provider_name = "Scripted Provider"
    base_url = "https://provider.test"

    def __init__(
        self,
        *,
        instruments: Mapping[AssetClass, Sequence[ProviderInstrument]],
        bars: Mapping[str, Sequence[SeriesBar]] | None = None,
        failing_symbols: Sequence[str] = (),
        unavailable: Sequence[AssetClass] = (),
    ) -> None:
        self._instruments = {key: tuple(value) for key, value in instruments.items()}
        self._bars = {key: list(value) for key, value in (bars or {}).items()}
        self._failing = set(failing_symbols)
        self._unavailable = set(unavailable)
        self._lock = threading.Lock()
        self.fetch_calls: list[tuple[str, Optional[datetime]]] = []

    def list_instruments(self, asset_class: AssetClass) -> Sequence[ProviderInstrument]:
        if asset_class in self._unavailable:
            raise ProviderUnavailableError(f"{asset_class.value} feed unreachable")
        return self._instruments.get(asset_class, ())

    def fetch_series(self, instrument: ProviderInstrument, range_hint: Optional[datetime] = None) -> list[SeriesBar]:
        with self._lock:
            self.fetch_calls.append((instrument.symbol, range_hint))
        if instrument.symbol in self._failing:
            raise ProviderRequestError(f"fetch failed for {instrument.symbol}")
        bars = self._bars.get(instrument.symbol, [])
        if range_hint is not None:
            bars = [bar for bar in bars if bar.bar_ts_utc >= range_hint]
        return bars

    def list_currencies(self) -> Sequence[CurrencySpec]:
        return (CurrencySpec(code="USD", name="US Dollar"), CurrencySpec(code="EUR", name="Euro"))

    def list_exchanges(self) -> Sequence[ExchangeSpec]:
        return (ExchangeSpec(code="NASDAQ", name="NASDAQ", country="US", timezone="America/New_York", mic="XNAS"),)
