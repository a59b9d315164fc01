"""Allow ``python -m webfuzz``."""

from webfuzz.cli.app import app

app()
