"""Flask development server mimicking the guidance server API."""

from .app import create_app

__all__ = ["create_app"]
