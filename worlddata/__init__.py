"""Per-country statistics aggregated from public data providers."""

__version__ = "1.0.0"
