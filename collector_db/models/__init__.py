"""Model module imports for SQLAlchemy metadata registration."""

from __future__ import annotations

import logging

from collector_db.models.catalog import Currency, DataProvider, Exchange, Instrument, ProviderSymbol
from collector_db.models.ledger import SchemaMigrationLedger
from collector_db.models.price_series import PriceBar

logger = logging.getLogger(__name__)

__all__ = [
    "Currency",
    "DataProvider",
    "Exchange",
    "Instrument",
    "PriceBar",
    "ProviderSymbol",
    "SchemaMigrationLedger",
]
