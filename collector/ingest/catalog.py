"""Idempotent seeding of provider, currency and exchange reference rows."""

from __future__ import annotations

import logging
from typing import Sequence

from collector.common import CollectorDatabase
from collector.providers.contract import CurrencySpec, ExchangeSpec, MarketDataProvider

logger = logging.getLogger(__name__)


def ensure_data_provider(db: CollectorDatabase, provider: MarketDataProvider) -> int:
    """Upsert the provider row and return its id."""
    with db.transaction():
        row = db.fetch_one(
            """
            INSERT INTO data_provider (provider_code, name, base_url)
            VALUES (:provider_code, :name, :base_url)
            ON CONFLICT (provider_code) DO UPDATE
            SET name = EXCLUDED.name,
                base_url = EXCLUDED.base_url
            RETURNING provider_id
            """,
            {
                "provider_code": provider.provider_code,
                "name": provider.provider_name,
                "base_url": provider.base_url,
            },
        )
    if row is None:
        raise RuntimeError(f"Provider row for {provider.provider_code} was not returned")
    return int(row["provider_id"])


def ensure_currencies(db: CollectorDatabase, currencies: Sequence[CurrencySpec]) -> int:
    written = 0
    with db.transaction():
        for currency in currencies:
            written += max(
                db.execute(
                    """
                    INSERT INTO currency (currency_code, name, decimals)
                    VALUES (:currency_code, :name, :decimals)
                    ON CONFLICT (currency_code) DO UPDATE
                    SET name = EXCLUDED.name,
                        decimals = EXCLUDED.decimals
                    WHERE (currency.name, currency.decimals) IS DISTINCT FROM (EXCLUDED.name, EXCLUDED.decimals)
                    """,
                    {"currency_code": currency.code.upper(), "name": currency.name, "decimals": currency.decimals},
                ),
                0,
            )
    return written


def ensure_exchanges(db: CollectorDatabase, exchanges: Sequence[ExchangeSpec]) -> int:
    written = 0
    with db.transaction():
        for exchange in exchanges:
            written += max(
                db.execute(
                    """
                    INSERT INTO exchange (exchange_code, name, country, timezone, mic)
                    VALUES (:exchange_code, :name, :country, :timezone, :mic)
                    ON CONFLICT (exchange_code) DO UPDATE
                    SET name = EXCLUDED.name,
                        country = EXCLUDED.country,
                        timezone = EXCLUDED.timezone,
                        mic = EXCLUDED.mic
                    WHERE (exchange.name, exchange.country, exchange.timezone, exchange.mic)
                        IS DISTINCT FROM (EXCLUDED.name, EXCLUDED.country, EXCLUDED.timezone, EXCLUDED.mic)
                    """,
                    {
                        "exchange_code": exchange.code,
                        "name": exchange.name,
                        "country": exchange.country,
                        "timezone": exchange.timezone,
                        "mic": exchange.mic,
                    },
                ),
                0,
            )
    return written


def seed_reference_catalog(db: CollectorDatabase, provider: MarketDataProvider) -> int:
    """Seed currencies, exchanges and the provider row; return the provider id."""
    currencies = ensure_currencies(db, provider.list_currencies())
    exchanges = ensure_exchanges(db, provider.list_exchanges())
    provider_id = ensure_data_provider(db, provider)
    logger.info(
        "Reference catalog seeded for %s (currencies written=%d, exchanges written=%d).",
        provider.provider_code,
        currencies,
        exchanges,
    )
    return provider_id
