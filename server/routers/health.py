"""
Health check endpoints for deployment.

Provides:
- /health - Liveness check (is the app running?)
- /metrics - Room and game counts for monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from game import GamePhase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Room store reference (set during app initialization)
_room_manager = None


def set_health_dependencies(room_manager=None):
    """Set dependencies for health checks."""
    global _room_manager
    _room_manager = room_manager


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "ok": True,
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics")
async def metrics():
    """Operational counts for dashboards and alerting."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = list(_room_manager.rooms.values())
        metrics_data["rooms"] = {
            "active": len(rooms),
            "total_players": sum(len(r.members) for r in rooms),
            "games_in_progress": sum(
                1 for r in rooms if r.phase in (GamePhase.SETUP, GamePhase.PLAYING)
            ),
            "games_ended": sum(1 for r in rooms if r.phase == GamePhase.ENDED),
        }

    return metrics_data
