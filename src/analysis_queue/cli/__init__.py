"""Command-line interface for the analysis queue."""
