from __future__ import annotations

import logging
import resource
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from .... import __version__
from ....core.config import Settings
from ....core.dependencies import get_persistence_gateway, get_settings
from ....domain.ports.persistence import PersistenceGateway
from ...api.serializers import iso

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


def _memory_usage() -> Dict[str, int]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is reported in kilobytes on Linux.
    return {"maxRss": usage.ru_maxrss * 1024}


@router.get("/api/health")
async def health(request: Request, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return {
        "status": "OK",
        "timestamp": iso(datetime.now(timezone.utc)),
        "environment": settings.environment,
        "uptime": round(time.monotonic() - started_at, 3),
        "memory": _memory_usage(),
    }


@router.get("/")
async def root() -> Dict[str, Any]:
    return {
        "message": "BulkBuy API Server",
        "status": "running",
        "timestamp": iso(datetime.now(timezone.utc)),
        "version": __version__,
        "endpoints": {
            "health": "/api/health",
            "auth": "/api/auth",
            "products": "/api/products",
            "comments": "/api/comments",
            "users": "/api/users",
        },
    }


@router.get("/api/db-status")
async def db_status(persistence: PersistenceGateway = Depends(get_persistence_gateway)):
    try:
        counts = persistence.collection_counts()
    except Exception as exc:
        logger.exception("Failed to read database status.")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "error": "Failed to get database status", "message": str(exc)},
        )
    return {"status": "connected", "connected": True, "collections": counts}
