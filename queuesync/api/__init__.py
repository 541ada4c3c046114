"""
API module.
Contains the FastAPI application, routes, WebSocket transport and middleware.
"""

from queuesync.api.main import create_app, run

__all__ = ["create_app", "run"]
