"""
Health check endpoint.
"""
from fastapi import APIRouter

from ..core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "env": settings.app_env}
