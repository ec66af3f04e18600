"""Sentinel-2 texture change damage assessment."""

__version__ = "0.1.0"
