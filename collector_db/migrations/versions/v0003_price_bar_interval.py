"""Bar interval column and read-path indexes."""

from __future__ import annotations

import logging

from collector_db.definitions import Migration

logger = logging.getLogger(__name__)

SCRIPT = """
ALTER TABLE price_bar ADD COLUMN interval_code TEXT NOT NULL DEFAULT '1d';
ALTER TABLE price_bar ADD CONSTRAINT ck_price_bar_interval_code CHECK (interval_code IN ('1d'));
CREATE INDEX idx_price_bar_bar_ts_desc ON price_bar (bar_ts_utc DESC);
CREATE INDEX idx_instrument_asset_class ON instrument (asset_class);
"""

MIGRATION = Migration.from_script("0003", "price bar interval", SCRIPT)
