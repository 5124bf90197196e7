"""Command line interface."""

from diffeq_workshop.cli.app import app

__all__ = ["app"]
