"""Domain layer: donation model, validation, ownership and services."""
