# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, all routers, and the
dashboard WebSocket.
"""

import asyncio
import time
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.routers import announcements, auth, health, live, occupancy, seats, zones
from app.services.broadcast import ConnectionRegistry
from app.services.errors import LibrarySyncError
from app.services.expiry_sweeper import run_expiry_sweeper
from app.services.ingest import IngestService, format_errors
from app.services.occupancy import initial_data
from app.services.seed import seed_demo_data, seed_zones
from app.services.storage import Storage, create_storage
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Admin writes guarded by API_KEY when one is configured
ADMIN_ROUTES = (
    ("POST", "/api/occupancy/update"),
    ("POST", "/api/announcements"),
    ("PUT", "/api/announcements/"),
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for administrative writes.
    Dashboards, scans and seat posts stay open. Leave API_KEY empty to disable.
    """
    async def dispatch(self, request: Request, call_next):
        guarded = any(
            request.method == method and request.url.path.startswith(path)
            for method, path in ADMIN_ROUTES
        )
        if not guarded:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Invalid or missing API key"},
            )
        return await call_next(request)


def create_app(storage: Optional[Storage] = None, seed_demo: Optional[bool] = None) -> FastAPI:
    app = FastAPI(
        title="Library Occupancy Live Sync API",
        description="Live zone occupancy, seat posts and announcements with WebSocket fan-out.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Core services (one of each per process) ──────────────────────────
    if storage is None:
        storage = create_storage(settings.STORAGE_BACKEND, settings.TOTAL_CAPACITY, settings.DATABASE_URL)
    if seed_zones(storage) and (settings.SEED_DEMO_DATA if seed_demo is None else seed_demo):
        seed_demo_data(storage)

    registry = ConnectionRegistry(lambda: initial_data(storage), max_queue=settings.WS_SEND_QUEUE_SIZE)
    app.state.storage = storage
    app.state.registry = registry
    app.state.ingest = IngestService(storage, registry)
    app.state.sweeper = None

    # ── CORS (dashboards may be served from another origin) ──────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.API_KEY:
        app.add_middleware(APIKeyMiddleware)

    # ── Request Timing Middleware ────────────────────────────────────────
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = round((time.time() - start) * 1000, 2)
        logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
        return response

    # ── Error Handlers ───────────────────────────────────────────────────
    @app.exception_handler(LibrarySyncError)
    async def library_error_handler(request: Request, exc: LibrarySyncError):
        logger.info(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = format_errors(exc.errors())
        logger.info(f"{request.method} {request.url.path} → 400: {message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # ── Routers ──────────────────────────────────────────────────────────
    app.include_router(health.router,        prefix="/api", tags=["💚 Health"])
    app.include_router(auth.router,          prefix="/api", tags=["🔑 Auth"])
    app.include_router(occupancy.router,     prefix="/api", tags=["👥 Occupancy"])
    app.include_router(zones.router,         prefix="/api", tags=["🗺️  Zones"])
    app.include_router(seats.router,         prefix="/api", tags=["💺 Seat Posts"])
    app.include_router(announcements.router, prefix="/api", tags=["📢 Announcements"])
    app.include_router(live.router,                         tags=["📡 Live Updates"])

    # ── Startup ──────────────────────────────────────────────────────────
    @app.on_event("startup")
    async def startup():
        logger.info("🚀 Library occupancy backend starting up...")
        logger.info(f"🗄️  Storage backend: {settings.STORAGE_BACKEND}")
        logger.info(f"🌐 Listening on http://{settings.BACKEND_HOST}:{settings.BACKEND_PORT}")
        logger.info(f"📡 Dashboards connect to ws://<host>{settings.WS_PATH}")
        if settings.HYGIENE_INTERVAL_SECONDS > 0:
            app.state.sweeper = asyncio.create_task(
                run_expiry_sweeper(app.state.ingest, settings.HYGIENE_INTERVAL_SECONDS),
                name="expiry-sweeper",
            )

    @app.on_event("shutdown")
    async def shutdown():
        logger.info("🛑 Library occupancy backend shutting down...")
        if app.state.sweeper:
            app.state.sweeper.cancel()
        for conn in registry.connections:
            await registry.close(conn)

    return app


app = create_app()
