"""Core utilities: configuration, logging, errors and naming."""
