"""MediaSet - metadata lookup and cover-art enrichment for a personal media catalog."""

__version__ = "0.1.0"
