"""Command line interface."""

from agency.cli.main import app

__all__ = ["app"]
