"""Versioned SQL migrations for DB-API connections, with tag, time and naming helpers."""

__version__ = "0.1.0"