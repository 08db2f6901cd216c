"""
StreamLoop HTTP server - relays orchestration events as Server-Sent Events.

Run with:
    STREAMLOOP_CONFIG=config.yaml streamloop-server --port 8000
"""

from .app import create_api, require_app, set_app
from .main import main

__all__ = ["create_api", "require_app", "set_app", "main"]
