"""Synchronized document store for small squads."""

__version__ = "0.1.0"
