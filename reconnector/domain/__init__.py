"""Domain layer: interfaces and exceptions shared by all transports."""
