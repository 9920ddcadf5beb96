"""Sequence reconciliation and series ingestion across asset classes."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Sequence

from collector.common import CollectorDatabase
from collector.errors import ProviderError
from collector.ingest.catalog import seed_reference_catalog
from collector.ingest.reconciler import load_instrument_ids, reconcile
from collector.ingest.report import IngestionReport, SeriesResult
from collector.ingest.series_ingestor import SeriesIngestor
from collector.providers.contract import MarketDataProvider, ProviderInstrument
from collector_db.enums import AssetClass

logger = logging.getLogger(__name__)

ASSET_CLASS_ORDER: tuple[AssetClass, ...] = (AssetClass.EQUITY, AssetClass.FX)


@dataclass(frozen=True)
class ReferenceSnapshot:
    """Outcome of the reconciliation phase, consumed by series ingestion."""

    provider_id: int
    instruments: dict[AssetClass, tuple[ProviderInstrument, ...]] = field(default_factory=dict)
    upserted: dict[AssetClass, int] = field(default_factory=dict)
    unavailable: tuple[AssetClass, ...] = ()


class IngestionOrchestrator:
    """Runs reconciliation then series ingestion for equities and FX."""

    def __init__(
        self,
        *,
        db: CollectorDatabase,
        provider: MarketDataProvider,
        max_workers: int = 1,
        asset_classes: Sequence[AssetClass] = ASSET_CLASS_ORDER,
    ) -> None:
        self._db = db
        self._provider = provider
        self._max_workers = max_workers
        self._asset_classes = tuple(asset_classes)

    def reconcile_reference_data(self) -> ReferenceSnapshot:
        provider_id = seed_reference_catalog(self._db, self._provider)

        instruments: dict[AssetClass, tuple[ProviderInstrument, ...]] = {}
        upserted: dict[AssetClass, int] = {}
        unavailable: list[AssetClass] = []
        for asset_class in self._asset_classes:
            try:
                listed = tuple(self._provider.list_instruments(asset_class))
            except ProviderError as exc:
                logger.warning(
                    "Provider %s unreachable for %s; section left empty: %s",
                    self._provider.provider_code,
                    asset_class.value,
                    exc,
                )
                unavailable.append(asset_class)
                instruments[asset_class] = ()
                upserted[asset_class] = 0
                continue

            instruments[asset_class] = listed
            upserted[asset_class] = reconcile(self._db, asset_class, listed, provider_id=provider_id)
            logger.info(
                "Reconciled %s: %d listed, %d upserted.",
                asset_class.value,
                len(listed),
                upserted[asset_class],
            )

        return ReferenceSnapshot(
            provider_id=provider_id,
            instruments=instruments,
            upserted=upserted,
            unavailable=tuple(unavailable),
        )

    def ingest_series(self, snapshot: ReferenceSnapshot) -> IngestionReport:
        ingestor = SeriesIngestor(
            db=self._db,
            provider=self._provider,
            provider_id=snapshot.provider_id,
            max_workers=self._max_workers,
        )
        sections: dict[AssetClass, tuple[SeriesResult, ...]] = {}
        for asset_class in self._asset_classes:
            listed = snapshot.instruments.get(asset_class, ())
            if not listed:
                sections[asset_class] = ()
                continue
            instrument_ids = load_instrument_ids(self._db, asset_class)
            sections[asset_class] = ingestor.ingest_all(asset_class, listed, instrument_ids)

        return IngestionReport(
            provider_code=self._provider.provider_code,
            equities=sections.get(AssetClass.EQUITY, ()),
            fx=sections.get(AssetClass.FX, ()),
        )

    def run(self) -> IngestionReport:
        return self.ingest_series(self.reconcile_reference_data())
