"""Fuzzy duplicate detection for file references of catalog entries."""

__version__ = "0.1.0"
