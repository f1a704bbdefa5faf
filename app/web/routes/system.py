"""
System/health API routes.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.db.supabase_client import is_supabase_configured
from app.web.schemas import success_response

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return JSONResponse(success_response(data={"status": "healthy"}, message="Service is running"))


@router.get("/api/status")
async def api_status():
    """Storage backend and import limits."""
    return JSONResponse(
        success_response(
            data={
                "version": __version__,
                "storage": "supabase" if is_supabase_configured() else "local",
                "target_timezone": settings.target_timezone,
                "max_upload_bytes": settings.max_upload_bytes,
            }
        )
    )
