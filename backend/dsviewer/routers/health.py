from __future__ import annotations

from fastapi import APIRouter, Request

from ..settings import settings

router = APIRouter()


@router.get("/", tags=["health"])
def health(request: Request):
    credentials = getattr(request.app.state, "credentials", None)
    return {
        "message": "Datastore Viewer API",
        "version": "1.0.0",
        "status": "running",
        "port": settings.port,
        "environment": settings.normalized_environment,
        "credentials": len(credentials) if credentials is not None else 0,
        "surface": settings.surface_profile,
        "endpoints": [
            "POST /api/integrations/slack/commands",
        ],
    }
