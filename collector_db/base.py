"""Declarative base shared by the collector's catalog, price-series and ledger models.

The models mirror the migration DDL; they exist so the schema contract can be
checked in tests, not to issue ``CREATE TABLE`` themselves.
"""

from __future__ import annotations

import logging

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

collector_metadata = MetaData()


class Base(DeclarativeBase):
    """Declarative root for every table owned by ``collector_db.migrations``."""

    metadata = collector_metadata
