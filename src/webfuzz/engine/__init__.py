"""Concurrent request dispatch engine."""
