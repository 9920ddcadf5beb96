"""Migration ledger model definition."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import DateTime, PrimaryKeyConstraint, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from collector_db.base import Base

logger = logging.getLogger(__name__)


class SchemaMigrationLedger(Base):
    """Append-only record of applied migrations."""

    __tablename__ = "schema_migration_ledger"
    __table_args__ = (PrimaryKeyConstraint("migration_id", name="pk_schema_migration_ledger"),)

    migration_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    applied_at_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
