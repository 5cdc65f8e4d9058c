"""Geospatial core for planning multi-day cycling tours."""

__version__ = "0.1.0"
