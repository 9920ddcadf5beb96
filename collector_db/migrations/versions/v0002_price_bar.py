"""Daily price history keyed by instrument and bar timestamp."""

from __future__ import annotations

import logging

from collector_db.definitions import Migration

logger = logging.getLogger(__name__)

SCRIPT = """
CREATE TABLE price_bar (
    instrument_id INTEGER NOT NULL,
    bar_ts_utc TIMESTAMPTZ NOT NULL,
    open_price NUMERIC(38,18),
    high_price NUMERIC(38,18),
    low_price NUMERIC(38,18),
    close_price NUMERIC(38,18) NOT NULL,
    volume NUMERIC(38,18),
    provider_id SMALLINT NOT NULL,
    ingested_at_utc TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at_utc TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT pk_price_bar PRIMARY KEY (instrument_id, bar_ts_utc),
    CONSTRAINT fk_price_bar_instrument FOREIGN KEY (instrument_id)
        REFERENCES instrument (instrument_id) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT fk_price_bar_provider FOREIGN KEY (provider_id)
        REFERENCES data_provider (provider_id) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT ck_price_bar_close_pos CHECK (close_price > 0),
    CONSTRAINT ck_price_bar_high_low CHECK (high_price IS NULL OR low_price IS NULL OR high_price >= low_price),
    CONSTRAINT ck_price_bar_volume_nonneg CHECK (volume IS NULL OR volume >= 0)
);
"""

MIGRATION = Migration.from_script("0002", "price bar", SCRIPT)
