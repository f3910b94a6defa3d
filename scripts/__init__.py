"""Command-line entry points for portfolio reporting."""
