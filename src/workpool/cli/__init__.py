"""workpool command-line interface (``workpool run``, ``workpool config``)."""

from workpool.cli.app import app

__all__ = ["app"]
