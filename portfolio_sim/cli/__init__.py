"""Command line interface for portfolio simulation."""
