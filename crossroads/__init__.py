"""Crossroads: a single signalized intersection traffic simulation."""

__version__ = "0.1.0"
