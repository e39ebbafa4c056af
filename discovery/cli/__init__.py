"""Command line interface for the discovery search middleware."""
