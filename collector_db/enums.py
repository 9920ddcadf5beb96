"""Enumerations shared by the collector schema and ingestion runtime."""

from __future__ import annotations

import enum
import logging

logger = logging.getLogger(__name__)


class AssetClass(str, enum.Enum):
    """Asset class of a catalog instrument."""

    EQUITY = "EQUITY"
    FX = "FX"


class ObjectKind(str, enum.Enum):
    """Kind of a replaceable database object."""

    FUNCTION = "FUNCTION"
    TRIGGER = "TRIGGER"
    VIEW = "VIEW"
