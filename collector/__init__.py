"""Market-data collector: schema lifecycle plus reference data and price series ingestion."""
