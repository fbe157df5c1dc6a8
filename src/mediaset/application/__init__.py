"""Application layer: lookup strategies, enrichment services and workers."""
