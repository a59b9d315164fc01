"""Command-line interface for webfuzz."""
