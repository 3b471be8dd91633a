"""Per-entity adapters that plug domain collections into the search engine."""
