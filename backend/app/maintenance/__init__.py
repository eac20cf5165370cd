"""Maintenance commands run against the configured storage backend."""
