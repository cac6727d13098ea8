"""Command-line interface for AMP-ML."""
