"""Command line interface for the probe exporter."""
