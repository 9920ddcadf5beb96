"""Price history model definitions."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    Numeric,
    PrimaryKeyConstraint,
    SmallInteger,
    Text,
    desc,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from collector_db.base import Base

logger = logging.getLogger(__name__)


class PriceBar(Base):
    """Daily OHLCV bar; overwritten in place when the provider corrects a period."""

    __tablename__ = "price_bar"
    __table_args__ = (
        PrimaryKeyConstraint("instrument_id", "bar_ts_utc", name="pk_price_bar"),
        ForeignKeyConstraint(["instrument_id"], ["instrument.instrument_id"], name="fk_price_bar_instrument"),
        ForeignKeyConstraint(["provider_id"], ["data_provider.provider_id"], name="fk_price_bar_provider"),
        CheckConstraint("close_price > 0", name="ck_price_bar_close_pos"),
        CheckConstraint(
            "high_price IS NULL OR low_price IS NULL OR high_price >= low_price",
            name="ck_price_bar_high_low",
        ),
        CheckConstraint("volume IS NULL OR volume >= 0", name="ck_price_bar_volume_nonneg"),
        CheckConstraint("interval_code IN ('1d')", name="ck_price_bar_interval_code"),
        Index("idx_price_bar_bar_ts_desc", desc("bar_ts_utc")),
    )

    instrument_id: Mapped[int] = mapped_column(Integer, nullable=False)
    bar_ts_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    open_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 18))
    high_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 18))
    low_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 18))
    close_price: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    volume: Mapped[Decimal | None] = mapped_column(Numeric(38, 18))
    provider_id: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    ingested_at_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    interval_code: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'1d'"))
