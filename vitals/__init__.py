"""Typed access layer over an external health-data store."""

__version__ = "0.1.0"
