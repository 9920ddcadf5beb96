"""Error taxonomy for the collector.

Schema errors are fatal for a run. Provider errors are recoverable and are
isolated per asset class or per instrument by the ingestion layer.
"""

from __future__ import annotations


class CollectorError(RuntimeError):
    """Base class for collector failures."""


class ConnectionClosedError(CollectorError):
    """Raised when a connection is requested after the manager was closed."""


class SchemaError(CollectorError):
    """Fatal schema-management failure."""


class LedgerError(SchemaError):
    """Migration ledger could not be created, read or trusted."""


class MigrationError(SchemaError):
    """A versioned migration failed and was rolled back."""

    def __init__(self, message: str, *, migration_id: str | None = None, name: str | None = None) -> None:
        super().__init__(message)
        self.migration_id = migration_id
        self.name = name


class ReplaceableObjectError(SchemaError):
    """A replaceable object could not be (re)defined."""

    def __init__(self, message: str, *, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class ProviderError(CollectorError):
    """Market-data provider failure."""


class ProviderUnavailableError(ProviderError):
    """Provider could not be reached at all; distinct from an empty result."""


class ProviderRequestError(ProviderError):
    """A single provider request failed after transport retries."""
