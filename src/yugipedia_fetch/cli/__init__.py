"""Command line interface for yugipedia-fetch."""
