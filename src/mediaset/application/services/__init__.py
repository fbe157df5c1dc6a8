"""Application services: lookup strategies, image download and enrichment."""
