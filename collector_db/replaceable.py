"""Replaceable (non-versioned) database objects refreshed on every startup.

Objects are listed in dependency order; each declares what it depends on so the
refresher can reject an ordering mistake instead of guessing a new order.
"""

from __future__ import annotations

import logging

from collector_db.definitions import ReplaceableObject
from collector_db.enums import ObjectKind

logger = logging.getLogger(__name__)


FN_TOUCH_UPDATED_AT = ReplaceableObject(
    name="fn_touch_updated_at",
    kind=ObjectKind.FUNCTION,
    statements=(
        """
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            NEW.updated_at_utc := now();
            RETURN NEW;
        END;
        $$;
        """,
    ),
)

TRG_INSTRUMENT_TOUCH_UPDATED_AT = ReplaceableObject(
    name="trg_instrument_touch_updated_at",
    kind=ObjectKind.TRIGGER,
    statements=(
        "DROP TRIGGER IF EXISTS trg_instrument_touch_updated_at ON instrument;",
        """
        CREATE TRIGGER trg_instrument_touch_updated_at
        BEFORE UPDATE ON instrument
        FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
        """,
    ),
    depends_on=("fn_touch_updated_at",),
)

TRG_PRICE_BAR_TOUCH_UPDATED_AT = ReplaceableObject(
    name="trg_price_bar_touch_updated_at",
    kind=ObjectKind.TRIGGER,
    statements=(
        "DROP TRIGGER IF EXISTS trg_price_bar_touch_updated_at ON price_bar;",
        """
        CREATE TRIGGER trg_price_bar_touch_updated_at
        BEFORE UPDATE ON price_bar
        FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
        """,
    ),
    depends_on=("fn_touch_updated_at",),
)

V_PRICE_BAR_DAILY_RETURN = ReplaceableObject(
    name="v_price_bar_daily_return",
    kind=ObjectKind.VIEW,
    statements=(
        """
        CREATE OR REPLACE VIEW v_price_bar_daily_return AS
        SELECT
            pb.instrument_id,
            pb.bar_ts_utc,
            pb.close_price,
            pb.close_price / NULLIF(
                LAG(pb.close_price) OVER (PARTITION BY pb.instrument_id ORDER BY pb.bar_ts_utc),
                0
            ) - 1 AS simple_return
        FROM price_bar pb;
        """,
    ),
)

V_INSTRUMENT_LATEST_BAR = ReplaceableObject(
    name="v_instrument_latest_bar",
    kind=ObjectKind.VIEW,
    statements=(
        """
        CREATE OR REPLACE VIEW v_instrument_latest_bar AS
        SELECT DISTINCT ON (r.instrument_id)
            i.instrument_id,
            i.asset_class,
            i.symbol,
            r.bar_ts_utc,
            r.close_price,
            r.simple_return
        FROM v_price_bar_daily_return r
        JOIN instrument i ON i.instrument_id = r.instrument_id
        ORDER BY r.instrument_id, r.bar_ts_utc DESC;
        """,
    ),
    depends_on=("v_price_bar_daily_return",),
)


REPLACEABLE_OBJECTS: tuple[ReplaceableObject, ...] = (
    FN_TOUCH_UPDATED_AT,
    TRG_INSTRUMENT_TOUCH_UPDATED_AT,
    TRG_PRICE_BAR_TOUCH_UPDATED_AT,
    V_PRICE_BAR_DAILY_RETURN,
    V_INSTRUMENT_LATEST_BAR,
)
