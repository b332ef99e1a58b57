"""Command line entrypoint (`streamline`)."""

from .main import app

__all__ = ["app"]
