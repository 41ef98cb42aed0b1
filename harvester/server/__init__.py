"""Dashboard server exposing the worker supervisor over HTTP and WebSocket."""
from .app import create_app

__all__ = ["create_app"]
