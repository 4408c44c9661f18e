"""
API v1 endpoints.
"""

from .health import router as health_router
from .designs import router as designs_router
from .specs import router as specs_router
from .sessions import router as sessions_router
from .builds import router as builds_router
from .creations import router as creations_router

__all__ = [
    "health_router",
    "designs_router",
    "specs_router",
    "sessions_router",
    "builds_router",
    "creations_router",
]
