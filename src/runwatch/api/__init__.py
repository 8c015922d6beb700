"""HTTP surface for runwatch."""

from .app import create_app
from .routes import create_routes

__all__ = ["create_app", "create_routes"]
