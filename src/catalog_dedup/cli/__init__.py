"""Command line interface for catalog duplicate detection."""
