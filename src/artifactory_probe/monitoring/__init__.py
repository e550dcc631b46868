"""Monitoring surface of the probe exporter."""
