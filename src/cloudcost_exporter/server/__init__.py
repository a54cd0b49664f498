"""HTTP server exposing metrics and health probes."""

from .app import create_app

__all__ = ["create_app"]
