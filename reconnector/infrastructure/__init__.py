"""Infrastructure layer: supervisor, transports and their support code."""
