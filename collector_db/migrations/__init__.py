"""Statically enumerated migration sequence.

Order is fixed here rather than discovered from the filesystem. Append new
migrations to the end with a strictly greater id.
"""

from __future__ import annotations

import logging

from collector_db.definitions import Migration
from collector_db.migrations.versions import v0001_reference_catalog, v0002_price_bar, v0003_price_bar_interval

logger = logging.getLogger(__name__)

MIGRATIONS: tuple[Migration, ...] = (
    v0001_reference_catalog.MIGRATION,
    v0002_price_bar.MIGRATION,
    v0003_price_bar_interval.MIGRATION,
)

__all__ = ["MIGRATIONS"]
