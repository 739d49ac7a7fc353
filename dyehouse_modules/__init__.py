"""Dyehouse read-side modules built on the pure engines."""
