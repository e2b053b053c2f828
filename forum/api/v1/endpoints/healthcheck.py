"""
Liveness endpoint. No authentication; still rate limited.
"""

from __future__ import annotations

from fastapi import APIRouter

from forum.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/healthcheck")
async def healthcheck() -> dict:
    return {
        "status": "available",
        "system_info": {
            "environment": settings.ENVIRONMENT,
            "version": settings.VERSION,
        },
    }
