"""
Health check endpoints for deployment.

Provides:
- /health - Liveness check (is the app running?)
- /ready - Readiness check (is the room registry wired up?)
- /metrics - Room and player counts for monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Set during app startup
_room_manager = None


def set_health_dependencies(room_manager=None):
    """Set dependencies for health checks."""
    global _room_manager
    _room_manager = room_manager


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check():
    """
    Liveness check.

    Always 200 while the process is alive.
    """
    return {"status": "ok", "timestamp": _now()}


@router.get("/ready")
async def readiness_check():
    """
    Readiness check.

    Returns 503 until startup has handed over the room registry.
    """
    ready = _room_manager is not None
    return JSONResponse(
        content={
            "status": "ok" if ready else "starting",
            "checks": {"rooms": {"status": "ok" if ready else "not_configured"}},
            "timestamp": _now(),
        },
        status_code=200 if ready else 503,
    )


@router.get("/metrics")
async def metrics():
    """Room and player counts, grouped by room status."""
    metrics_data = {"timestamp": _now()}

    if _room_manager is not None:
        stats = _room_manager.stats()
        metrics_data.update({
            "active_rooms": stats["total_rooms"],
            "total_players": stats["total_players"],
            "games_in_progress": stats["rooms_by_status"].get("playing", 0),
            "rooms_by_status": stats["rooms_by_status"],
        })

    return metrics_data
