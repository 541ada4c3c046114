"""
API routes module.
"""

from queuesync.api.routes.health import router as health_router
from queuesync.api.routes.queue import router as queue_router

__all__ = ["queue_router", "health_router"]
