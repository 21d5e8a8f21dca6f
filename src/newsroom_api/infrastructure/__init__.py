"""Infrastructure layer: storage and outbound service clients."""
