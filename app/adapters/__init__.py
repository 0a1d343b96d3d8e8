"""Adapters for external systems: the owner's remote record store."""
