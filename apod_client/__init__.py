"""Resilient client for the NASA Astronomy Picture of the Day service."""

__version__ = "0.1.0"
