"""Allow ``python -m workpool``."""

from workpool.cli.app import app

app()
