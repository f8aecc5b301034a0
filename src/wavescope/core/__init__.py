"""Frequency data sources and animation state."""
