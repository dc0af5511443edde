from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging, time

from config import settings
from api.v1.router import router as v1_router
from api.v2.router import router as v2_router
from services.bridge import BridgeClient
from services.poller import StationPoller
from services.station import WeatherStation

logger = logging.getLogger("weatherstation.hub")
if not logger.handlers:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def create_app(station: WeatherStation | None = None, bridge: BridgeClient | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = (time.perf_counter() - start) * 1000.0
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, dur_ms)
        return response

    @app.get("/", tags=["meta"])
    async def root():
        return {"name": settings.app_name, "version": settings.app_version}

    @app.get("/health", tags=["meta"])
    async def health():
        return JSONResponse({"status": "ok", "version": settings.app_version})

    app.include_router(v1_router)
    app.include_router(v2_router)

    app.state.station = station
    app.state.bridge = bridge
    app.state.poller = None

    @app.on_event("startup")
    async def _startup():
        # Storage is opened here, not at import, so importing ``main`` touches no files.
        if app.state.station is None:
            app.state.station = WeatherStation.from_settings(settings)
        if app.state.bridge is None:
            app.state.bridge = BridgeClient(
                settings.bridge_url,
                timeout=settings.bridge_timeout,
                max_body_bytes=settings.bridge_max_body_bytes,
            )
        app.state.poller = StationPoller(
            app.state.station,
            app.state.bridge,
            interval=settings.poll_interval_seconds,
        )
        if settings.poller_enabled:
            logger.info("Polling sensor bridge at %s", settings.bridge_url)
            await app.state.poller.start()
        else:
            logger.info("Bridge poller disabled (set POLLER_ENABLED=true to enable).")

    @app.on_event("shutdown")
    async def _shutdown():
        if app.state.poller is not None:
            await app.state.poller.stop()
        if app.state.bridge is not None:
            await app.state.bridge.close()

    return app

app = create_app()
