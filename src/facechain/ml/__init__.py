"""Media handling, crop extraction, inference scheduling and backends."""
