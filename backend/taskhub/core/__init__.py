"""Core utilities: configuration, constants, logging, ports."""
