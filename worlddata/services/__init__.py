"""Cache, aggregation and lifecycle services."""
