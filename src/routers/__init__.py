"""
Routers Package

Contains FastAPI router modules for:
- Token / session / decision relay endpoints
- Provider webhook endpoint
"""

from routers.session_router import session_router as session_router
from routers.webhook_router import webhook_router as webhook_router

__all__ = ["session_router", "webhook_router"]
