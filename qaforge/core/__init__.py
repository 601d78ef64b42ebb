"""qaforge core — discovery, aggregation, metrics, history and orchestration."""
