"""Polite, serialized Yugipedia API fetching."""

__version__ = "0.1.0"
