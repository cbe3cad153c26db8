"""
API routes module.
"""

from sitescan.api.routes.admin import router as admin_router
from sitescan.api.routes.analyses import router as analyses_router
from sitescan.api.routes.health import router as health_router

__all__ = ["analyses_router", "admin_router", "health_router"]
