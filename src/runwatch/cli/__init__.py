"""Command-line interface for runwatch."""

from .app import app

__all__ = ["app"]
