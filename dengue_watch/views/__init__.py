"""
Views package for organizing API endpoints.
"""
from .health import router as health_router
from .cases import router as cases_router
from .reports import router as reports_router
from .alerts import router as alerts_router
from .public import router as public_router
from .dashboard import router as dashboard_router

__all__ = [
    "health_router",
    "cases_router",
    "reports_router",
    "alerts_router",
    "public_router",
    "dashboard_router",
]
