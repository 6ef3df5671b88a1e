"""Command-line interface."""

from practice_engine.cli.main import app, run

__all__ = ["app", "run"]
