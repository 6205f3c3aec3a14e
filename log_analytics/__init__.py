"""Batch analytics over delimited web server access logs."""

__version__ = "0.1.0"
