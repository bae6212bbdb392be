"""Health check and monitoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from hotspot_server.main import get_config, get_stats

    snapshot = get_stats().snapshot()
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "runs_completed": snapshot["runs_completed"],
        "classifier": get_config().classifier.backend,
    }


@router.get("/stats")
async def stats() -> dict:
    """Detailed server statistics including recently analyzed regions.

    The ``active_regions`` section shows:
    - ``total``: regions analyzed in the last N seconds (configurable window)
    - ``synthetic``: catalog regions clustered from generated data
    - ``uploaded``: 1 if an uploaded dataset was clustered in the window
    - ``window_seconds``: the time window used for "active" calculation
    """
    from hotspot_server.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Parameter ranges and defaults for the dashboard sliders."""
    from hotspot_server.main import get_config

    config = get_config()
    clustering = config.clustering
    return {
        "epsilon_km": {
            "default": clustering.default_epsilon_km,
            "min": clustering.min_epsilon_km,
            "max": clustering.max_epsilon_km,
            "step": clustering.epsilon_step_km,
        },
        "min_pts": {
            "default": clustering.default_min_pts,
            "min": clustering.min_min_pts,
            "max": clustering.max_min_pts,
            "step": 1,
        },
        "mode": clustering.mode,
        "max_points": config.limits.max_points,
        "classifier": config.classifier.backend,
    }
