"""Command-line interface for subpipe."""
