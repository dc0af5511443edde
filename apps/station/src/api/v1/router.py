from fastapi import APIRouter

from config import settings

router = APIRouter(prefix="/api/v1", tags=["v1"])


@router.get("/health")
async def health():
    return {"status": "ok", "version": settings.app_version}


@router.get("/info")
async def info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "debug": settings.debug,
        "cors_origins": settings.cors_origins,
        "bridge_url": settings.bridge_url,
        "poller_enabled": settings.poller_enabled,
        "poll_interval_seconds": settings.poll_interval_seconds,
        "station_timezone": settings.station_timezone,
    }
