"""Core infrastructure: configuration, logging, security and persistence."""
