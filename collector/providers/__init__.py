"""Market-data provider contract and adapters."""
