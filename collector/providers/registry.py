"""Build the configured market-data provider."""

from __future__ import annotations

from collector.config import CollectorConfig
from collector.providers.contract import MarketDataProvider
from collector.providers.stooq_provider import StooqProvider


def build_provider(config: CollectorConfig) -> MarketDataProvider:
    if config.provider == "stooq":
        return StooqProvider(
            base_url=config.stooq_base_url,
            request_budget_per_minute=config.api_budget_per_minute,
            max_rows_per_series=config.max_rows_per_series,
            timeout_seconds=config.request_timeout_seconds,
        )
    raise RuntimeError(f"Unsupported provider: {config.provider}")
