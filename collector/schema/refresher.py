"""Idempotent create-or-replace of derived database objects."""

from __future__ import annotations

import logging
from typing import Sequence

from collector.common import CollectorDatabase
from collector.errors import ReplaceableObjectError
from collector_db.definitions import ReplaceableObject
from collector_db.replaceable import REPLACEABLE_OBJECTS

logger = logging.getLogger(__name__)


def validate_refresh_order(objects: Sequence[ReplaceableObject]) -> None:
    """Every declared dependency must be defined earlier in the sequence."""
    seen: set[str] = set()
    for obj in objects:
        if obj.name in seen:
            raise ReplaceableObjectError(f"Duplicate replaceable object: {obj.name}", name=obj.name)
        missing = [dep for dep in obj.depends_on if dep not in seen]
        if missing:
            raise ReplaceableObjectError(
                f"Replaceable object {obj.name} is declared before its dependencies {missing}",
                name=obj.name,
            )
        seen.add(obj.name)


class ReplaceableObjectRefresher:
    """Re-issues every replaceable object definition in declared order."""

    def __init__(self, db: CollectorDatabase, objects: Sequence[ReplaceableObject] = REPLACEABLE_OBJECTS) -> None:
        validate_refresh_order(objects)
        self._db = db
        self._objects = tuple(objects)

    def refresh_all(self) -> list[str]:
        refreshed: list[str] = []
        for obj in self._objects:
            try:
                with self._db.transaction():
                    for statement in obj.statements:
                        self._db.execute(statement)
            except Exception as exc:
                logger.exception("Replaceable object %s (%s) could not be refreshed.", obj.name, obj.kind.value)
                raise ReplaceableObjectError(f"Replaceable object {obj.name} failed: {exc}", name=obj.name) from exc
            logger.debug("Refreshed %s %s.", obj.kind.value.lower(), obj.name)
            refreshed.append(obj.name)
        return refreshed
