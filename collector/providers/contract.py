"""Provider protocol and normalized reference/series types for collector ingestion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Sequence

from collector_db.enums import AssetClass


@dataclass(frozen=True)
class ProviderInstrument:
    """Instrument as described by a provider.

    ``symbol`` is the catalog key (ticker for equities, pair such as
    ``EURUSD`` for FX); ``provider_symbol`` is the provider's own code.
    """

    asset_class: AssetClass
    symbol: str
    provider_symbol: str
    name: str
    exchange_code: Optional[str] = None
    currency_code: Optional[str] = None
    base_currency: Optional[str] = None
    quote_currency: Optional[str] = None


@dataclass(frozen=True)
class SeriesBar:
    """Normalized OHLCV bar payload; any price except close may be missing."""

    bar_ts_utc: datetime
    open_price: Optional[Decimal]
    high_price: Optional[Decimal]
    low_price: Optional[Decimal]
    close_price: Optional[Decimal]
    volume: Optional[Decimal]


@dataclass(frozen=True)
class CurrencySpec:
    """Currency reference row."""

    code: str
    name: str
    decimals: int = 2


@dataclass(frozen=True)
class ExchangeSpec:
    """Exchange reference row."""

    code: str
    name: str
    country: str
    timezone: str
    mic: Optional[str] = None


class MarketDataProvider(Protocol):
    """Canonical provider interface used by the ingestion orchestrator."""

    provider_code: str
    provider_name: str
    base_url: str

    def list_instruments(self, asset_class: AssetClass) -> Sequence[ProviderInstrument]:
        """Return instruments for the asset class.

        Raises ProviderUnavailableError when the provider cannot be reached;
        an empty sequence means the provider legitimately has nothing.
        """

    def fetch_series(self, instrument: ProviderInstrument, range_hint: Optional[datetime] = None) -> Iterable[SeriesBar]:
        """Fetch bars at or after ``range_hint`` (all available bars when None)."""

    def list_currencies(self) -> Sequence[CurrencySpec]:
        """Currencies referenced by this provider's instruments."""

    def list_exchanges(self) -> Sequence[ExchangeSpec]:
        """Exchanges referenced by this provider's instruments."""
