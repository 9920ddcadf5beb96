"""Reference catalog: currencies, exchanges, data providers and instruments."""

from __future__ import annotations

import logging

from collector_db.definitions import Migration

logger = logging.getLogger(__name__)

SCRIPT = """
CREATE TABLE currency (
    currency_code CHAR(3) NOT NULL,
    name TEXT NOT NULL,
    decimals SMALLINT NOT NULL DEFAULT 2,
    CONSTRAINT pk_currency PRIMARY KEY (currency_code),
    CONSTRAINT ck_currency_code_upper CHECK (currency_code = upper(currency_code)),
    CONSTRAINT ck_currency_decimals_nonneg CHECK (decimals >= 0)
);

CREATE TABLE exchange (
    exchange_code TEXT NOT NULL,
    name TEXT NOT NULL,
    country TEXT NOT NULL,
    timezone TEXT NOT NULL,
    mic TEXT,
    CONSTRAINT pk_exchange PRIMARY KEY (exchange_code),
    CONSTRAINT ck_exchange_code_not_blank CHECK (length(btrim(exchange_code)) > 0)
);

CREATE TABLE data_provider (
    provider_id SMALLINT GENERATED ALWAYS AS IDENTITY,
    provider_code TEXT NOT NULL,
    name TEXT NOT NULL,
    base_url TEXT NOT NULL,
    CONSTRAINT pk_data_provider PRIMARY KEY (provider_id),
    CONSTRAINT uq_data_provider_code UNIQUE (provider_code),
    CONSTRAINT ck_data_provider_code_not_blank CHECK (length(btrim(provider_code)) > 0)
);

CREATE TABLE instrument (
    instrument_id INTEGER GENERATED ALWAYS AS IDENTITY,
    asset_class TEXT NOT NULL,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL,
    exchange_code TEXT,
    currency_code CHAR(3),
    base_currency CHAR(3),
    quote_currency CHAR(3),
    created_at_utc TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at_utc TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT pk_instrument PRIMARY KEY (instrument_id),
    CONSTRAINT uq_instrument_asset_class_symbol UNIQUE (asset_class, symbol),
    CONSTRAINT fk_instrument_exchange FOREIGN KEY (exchange_code)
        REFERENCES exchange (exchange_code) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT fk_instrument_currency FOREIGN KEY (currency_code)
        REFERENCES currency (currency_code) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT fk_instrument_base_currency FOREIGN KEY (base_currency)
        REFERENCES currency (currency_code) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT fk_instrument_quote_currency FOREIGN KEY (quote_currency)
        REFERENCES currency (currency_code) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT ck_instrument_asset_class CHECK (asset_class IN ('EQUITY', 'FX')),
    CONSTRAINT ck_instrument_symbol_not_blank CHECK (length(btrim(symbol)) > 0),
    CONSTRAINT ck_instrument_symbol_upper CHECK (symbol = upper(symbol)),
    CONSTRAINT ck_instrument_fx_pair CHECK (
        asset_class <> 'FX' OR (base_currency IS NOT NULL AND quote_currency IS NOT NULL)
    )
);

CREATE TABLE provider_symbol (
    instrument_id INTEGER NOT NULL,
    provider_id SMALLINT NOT NULL,
    provider_symbol TEXT NOT NULL,
    CONSTRAINT pk_provider_symbol PRIMARY KEY (instrument_id, provider_id),
    CONSTRAINT uq_provider_symbol_provider_symbol UNIQUE (provider_id, provider_symbol),
    CONSTRAINT fk_provider_symbol_instrument FOREIGN KEY (instrument_id)
        REFERENCES instrument (instrument_id) ON UPDATE RESTRICT ON DELETE RESTRICT,
    CONSTRAINT fk_provider_symbol_provider FOREIGN KEY (provider_id)
        REFERENCES data_provider (provider_id) ON UPDATE RESTRICT ON DELETE RESTRICT
);
"""

MIGRATION = Migration.from_script("0001", "reference catalog", SCRIPT)
