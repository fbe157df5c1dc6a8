"""Infrastructure layer: provider clients, persistence, storage and observability."""
