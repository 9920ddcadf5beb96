"""Reconcile provider instrument lists against the stored catalog."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from collector.common import CollectorDatabase
from collector.providers.contract import ProviderInstrument
from collector_db.enums import AssetClass

logger = logging.getLogger(__name__)

TRACKED_ATTRIBUTES: tuple[str, ...] = (
    "name",
    "exchange_code",
    "currency_code",
    "base_currency",
    "quote_currency",
)


def _desired_attributes(instrument: ProviderInstrument) -> dict[str, Any]:
    return {
        "name": instrument.name,
        "exchange_code": instrument.exchange_code,
        "currency_code": instrument.currency_code.upper() if instrument.currency_code else None,
        "base_currency": instrument.base_currency.upper() if instrument.base_currency else None,
        "quote_currency": instrument.quote_currency.upper() if instrument.quote_currency else None,
    }


def _load_instrument(db: CollectorDatabase, asset_class: AssetClass, symbol: str) -> Optional[Mapping[str, Any]]:
    return db.fetch_one(
        """
        SELECT instrument_id, name, exchange_code, currency_code, base_currency, quote_currency
        FROM instrument
        WHERE asset_class = :asset_class
          AND symbol = :symbol
        """,
        {"asset_class": asset_class.value, "symbol": symbol},
    )


def _changed_attributes(existing: Mapping[str, Any], desired: Mapping[str, Any]) -> list[str]:
    return [name for name in TRACKED_ATTRIBUTES if existing.get(name) != desired[name]]


def _upsert_instrument(db: CollectorDatabase, asset_class: AssetClass, instrument: ProviderInstrument) -> tuple[int, bool]:
    """Return ``(instrument_id, written)`` where written is False for an unchanged row."""
    symbol = instrument.symbol.upper()
    desired = _desired_attributes(instrument)
    existing = _load_instrument(db, asset_class, symbol)

    if existing is None:
        row = db.fetch_one(
            """
            INSERT INTO instrument (
                asset_class, symbol, name, exchange_code,
                currency_code, base_currency, quote_currency
            ) VALUES (
                :asset_class, :symbol, :name, :exchange_code,
                :currency_code, :base_currency, :quote_currency
            )
            RETURNING instrument_id
            """,
            {"asset_class": asset_class.value, "symbol": symbol, **desired},
        )
        if row is None:
            raise RuntimeError(f"Insert of instrument {asset_class.value}:{symbol} returned no id")
        logger.info("Inserted instrument %s:%s.", asset_class.value, symbol)
        return int(row["instrument_id"]), True

    instrument_id = int(existing["instrument_id"])
    changed = _changed_attributes(existing, desired)
    if not changed:
        return instrument_id, False

    db.execute(
        """
        UPDATE instrument
        SET name = :name,
            exchange_code = :exchange_code,
            currency_code = :currency_code,
            base_currency = :base_currency,
            quote_currency = :quote_currency
        WHERE instrument_id = :instrument_id
        """,
        {"instrument_id": instrument_id, **desired},
    )
    logger.info("Updated instrument %s:%s (%s).", asset_class.value, symbol, ", ".join(changed))
    return instrument_id, True


def _upsert_provider_symbol(db: CollectorDatabase, *, instrument_id: int, provider_id: int, provider_symbol: str) -> None:
    db.execute(
        """
        INSERT INTO provider_symbol (instrument_id, provider_id, provider_symbol)
        VALUES (:instrument_id, :provider_id, :provider_symbol)
        ON CONFLICT (instrument_id, provider_id) DO UPDATE
        SET provider_symbol = EXCLUDED.provider_symbol
        WHERE provider_symbol.provider_symbol IS DISTINCT FROM EXCLUDED.provider_symbol
        """,
        {"instrument_id": instrument_id, "provider_id": provider_id, "provider_symbol": provider_symbol},
    )


def reconcile(
    db: CollectorDatabase,
    asset_class: AssetClass,
    instruments: Sequence[ProviderInstrument],
    *,
    provider_id: int | None = None,
) -> int:
    """Insert new and update changed instruments; return how many rows were written.

    Instruments missing from ``instruments`` are left untouched. A failure on
    one instrument is rolled back to its savepoint, logged and skipped.
    """
    upserted = 0
    for instrument in instruments:
        if instrument.asset_class != asset_class:
            logger.warning(
                "Skipping %s: provider returned asset class %s while reconciling %s.",
                instrument.symbol,
                instrument.asset_class.value,
                asset_class.value,
            )
            continue
        try:
            with db.transaction():
                instrument_id, written = _upsert_instrument(db, asset_class, instrument)
                if provider_id is not None:
                    _upsert_provider_symbol(
                        db,
                        instrument_id=instrument_id,
                        provider_id=provider_id,
                        provider_symbol=instrument.provider_symbol,
                    )
        except Exception:
            logger.warning("Reconciliation failed for %s:%s; skipped.", asset_class.value, instrument.symbol, exc_info=True)
            continue
        if written:
            upserted += 1
    return upserted


def load_instrument_ids(db: CollectorDatabase, asset_class: AssetClass) -> dict[str, int]:
    """Map catalog symbols to instrument ids for one asset class."""
    rows = db.fetch_all(
        """
        SELECT instrument_id, symbol
        FROM instrument
        WHERE asset_class = :asset_class
        """,
        {"asset_class": asset_class.value},
    )
    return {str(row["symbol"]): int(row["instrument_id"]) for row in rows}
