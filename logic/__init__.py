"""Logic Layer - anomaly detection over ingested buys."""
