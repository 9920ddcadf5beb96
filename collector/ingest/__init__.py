"""Reference data reconciliation, series ingestion and run orchestration."""
