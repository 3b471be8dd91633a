"""Domain layer: search contract value objects and the indexed record types."""
