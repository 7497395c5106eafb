"""Web interface for the albarán order desk."""

from .app import create_app

__all__ = ["create_app"]
