from fastapi import APIRouter

from .history_router import router as history_router
from .weather_router import router as weather_router

router = APIRouter(prefix="/api/v2", tags=["v2"])
router.include_router(weather_router)
router.include_router(history_router)
