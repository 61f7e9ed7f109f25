"""Infrastructure layer: configuration, logging, persistence and event delivery."""
