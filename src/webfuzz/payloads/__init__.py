"""Payload loading and template substitution."""
