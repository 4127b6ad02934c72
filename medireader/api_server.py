"""
FastAPI API Server.

REST relay that turns photos of dialysis machine displays into
structured readings, plus gateway-backed login and enterprise lookups.

Start with:
    uvicorn medireader.api_server:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medireader.api.auth import router as auth_router
from medireader.api.devices import router as devices_router
from medireader.api.enterprise import router as enterprise_router
from medireader.api.extract import router as extract_router
from medireader.api.middleware import RateLimitMiddleware, RequestIdMiddleware
from medireader.config import get_settings
from medireader.devices.catalog import PROFILES
from medireader.errors import ProcessingError
from medireader.logging_config import get_logger, setup_logging
from medireader.services.auth_service import AuthService
from medireader.services.device_detector import DetectionCache, DeviceDetector
from medireader.services.device_registry import DeviceRegistry
from medireader.services.enterprise_service import EnterpriseService
from medireader.services.extraction_service import ExtractionService
from medireader.services.vision_client import BackendExtractionClient, VisionClient

setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared services on startup, release Redis on shutdown."""
    settings = get_settings()
    logger.info("api_server_starting", environment=settings.environment.value)

    cache = None
    if settings.feature_detection_cache:
        cache = DetectionCache(settings.redis_url, settings.detection_cache_ttl_seconds)
        await cache.initialize()

    vision = VisionClient(settings)
    detector = DeviceDetector(vision, settings, cache=cache)
    registry = DeviceRegistry(
        PROFILES,
        vision,
        detector=detector,
        fallback_key=settings.fallback_device_key,
        backend_client=BackendExtractionClient(timeout=settings.vision_timeout_seconds),
    )

    app.state.settings = settings
    app.state.detector = detector
    app.state.registry = registry
    app.state.extraction_service = ExtractionService(registry, settings)
    app.state.auth_service = AuthService(settings)
    app.state.enterprise_service = EnterpriseService(settings)

    if not settings.openai_api_key:
        logger.warning("openai_api_key_missing")

    yield

    if cache is not None:
        await cache.close()
    logger.info("api_server_stopping")


async def processing_error_handler(request: Request, exc: ProcessingError) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        code=exc.code.value,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


_settings = get_settings()

app = FastAPI(
    title="MediReader Relay API",
    description="Vision-model extraction of dialysis machine readings",
    version=VERSION,
    lifespan=lifespan,
)

app.add_exception_handler(ProcessingError, processing_error_handler)

# Middleware (order matters: last added is outermost)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=_settings.rate_limit_max_requests,
    window_seconds=_settings.rate_limit_window_seconds,
)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(extract_router)
app.include_router(devices_router)
app.include_router(auth_router)
app.include_router(enterprise_router)


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": _settings.service_name}


@app.get("/api/health", tags=["System"])
async def api_health(request: Request) -> dict[str, Any]:
    """Liveness plus registry and in-flight counts."""
    registry: DeviceRegistry = request.app.state.registry
    service: ExtractionService = request.app.state.extraction_service
    return {
        "status": "ok",
        "service": _settings.service_name,
        "version": VERSION,
        "registeredDevices": registry.get_registry_stats()["totalDevices"],
        "inFlightRequests": service.tracker.active_count(),
    }


@app.get("/", tags=["System"])
async def root() -> dict[str, str]:
    """API root."""
    return {
        "service": "MediReader Relay",
        "version": VERSION,
        "docs": "/docs",
    }
