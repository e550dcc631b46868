"""Core primitives shared across the probe exporter."""
