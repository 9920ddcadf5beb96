"""Collector schema package.

``collector_db.migrations`` holds the versioned DDL, ``collector_db.replaceable``
the objects re-created on every start, and ``collector_db.models`` the ORM
mirror of the migrated tables.
"""

from __future__ import annotations

from collector_db import models
from collector_db.base import Base, collector_metadata

__all__ = ["Base", "collector_metadata", "models"]
