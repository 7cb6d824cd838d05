"""Command-line interface for envlib."""
