"""Reference catalog model definitions."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import (
    CHAR,
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Identity,
    Integer,
    PrimaryKeyConstraint,
    SmallInteger,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from collector_db.base import Base

logger = logging.getLogger(__name__)


class Currency(Base):
    """ISO currency reference row."""

    __tablename__ = "currency"
    __table_args__ = (
        PrimaryKeyConstraint("currency_code", name="pk_currency"),
        CheckConstraint("currency_code = upper(currency_code)", name="ck_currency_code_upper"),
        CheckConstraint("decimals >= 0", name="ck_currency_decimals_nonneg"),
    )

    currency_code: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    decimals: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default=text("2"))


class Exchange(Base):
    """Listing venue for equities."""

    __tablename__ = "exchange"
    __table_args__ = (
        PrimaryKeyConstraint("exchange_code", name="pk_exchange"),
        CheckConstraint("length(btrim(exchange_code)) > 0", name="ck_exchange_code_not_blank"),
    )

    exchange_code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    country: Mapped[str] = mapped_column(Text, nullable=False)
    timezone: Mapped[str] = mapped_column(Text, nullable=False)
    mic: Mapped[str | None] = mapped_column(Text)


class DataProvider(Base):
    """External market-data source."""

    __tablename__ = "data_provider"
    __table_args__ = (
        PrimaryKeyConstraint("provider_id", name="pk_data_provider"),
        UniqueConstraint("provider_code", name="uq_data_provider_code"),
        CheckConstraint("length(btrim(provider_code)) > 0", name="ck_data_provider_code_not_blank"),
    )

    provider_id: Mapped[int] = mapped_column(SmallInteger, Identity(always=True), primary_key=True)
    provider_code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    base_url: Mapped[str] = mapped_column(Text, nullable=False)


class Instrument(Base):
    """Tradable instrument (equity or FX pair) tracked by the catalog."""

    __tablename__ = "instrument"
    __table_args__ = (
        PrimaryKeyConstraint("instrument_id", name="pk_instrument"),
        UniqueConstraint("asset_class", "symbol", name="uq_instrument_asset_class_symbol"),
        ForeignKeyConstraint(["exchange_code"], ["exchange.exchange_code"], name="fk_instrument_exchange"),
        ForeignKeyConstraint(["currency_code"], ["currency.currency_code"], name="fk_instrument_currency"),
        ForeignKeyConstraint(["base_currency"], ["currency.currency_code"], name="fk_instrument_base_currency"),
        ForeignKeyConstraint(["quote_currency"], ["currency.currency_code"], name="fk_instrument_quote_currency"),
        CheckConstraint("asset_class IN ('EQUITY', 'FX')", name="ck_instrument_asset_class"),
        CheckConstraint("length(btrim(symbol)) > 0", name="ck_instrument_symbol_not_blank"),
        CheckConstraint("symbol = upper(symbol)", name="ck_instrument_symbol_upper"),
        CheckConstraint(
            "asset_class <> 'FX' OR (base_currency IS NOT NULL AND quote_currency IS NOT NULL)",
            name="ck_instrument_fx_pair",
        ),
    )

    instrument_id: Mapped[int] = mapped_column(Integer, Identity(always=True), primary_key=True)
    asset_class: Mapped[str] = mapped_column(Text, nullable=False)
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    exchange_code: Mapped[str | None] = mapped_column(Text)
    currency_code: Mapped[str | None] = mapped_column(CHAR(3))
    base_currency: Mapped[str | None] = mapped_column(CHAR(3))
    quote_currency: Mapped[str | None] = mapped_column(CHAR(3))
    created_at_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )


class ProviderSymbol(Base):
    """Provider-specific ticker for a catalog instrument."""

    __tablename__ = "provider_symbol"
    __table_args__ = (
        PrimaryKeyConstraint("instrument_id", "provider_id", name="pk_provider_symbol"),
        UniqueConstraint("provider_id", "provider_symbol", name="uq_provider_symbol_provider_symbol"),
        ForeignKeyConstraint(["instrument_id"], ["instrument.instrument_id"], name="fk_provider_symbol_instrument"),
        ForeignKeyConstraint(["provider_id"], ["data_provider.provider_id"], name="fk_provider_symbol_provider"),
    )

    instrument_id: Mapped[int] = mapped_column(Integer, nullable=False)
    provider_id: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    provider_symbol: Mapped[str] = mapped_column(Text, nullable=False)
