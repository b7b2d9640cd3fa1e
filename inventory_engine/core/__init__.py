"""Core configuration, errors and cross-cutting middleware."""
