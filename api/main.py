"""
api/main.py -- FastAPI application entry point for HerdWatch.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for the configured frontend origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan opens the user and herd stores on startup and disposes of their
connection pools on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from slowapi.middleware import SlowAPIMiddleware

from api.errors import register_exception_handlers
from api.limiter import limiter
from api.models import HealthResponse
from api.routes.v1.anomalies import router as anomalies_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.dashboard import router as dashboard_router
from api.routes.v1.devices import router as devices_router
from api.routes.v1.farms import router as farms_router
from api.routes.v1.livestock import router as livestock_router
from api.routes.v1.notifications import router as notifications_router
from api.routes.v1.sensors import router as sensors_router
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from core.config import get_settings
from herd.store import HerdStore

APP_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("herdwatch.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and close them on shutdown.

    Both stores share DATABASE_URL; each owns its own engine. Tables are
    created on first connect, so a fresh database needs no migration step.
    """
    logger.info("HerdWatch API starting up")
    app.state.user_store = UserStore()
    app.state.herd = HerdStore()
    logger.info("Stores initialized (users present: %s)", app.state.user_store.has_users())

    yield

    app.state.herd.close()
    app.state.user_store.close()
    logger.info("HerdWatch API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="HerdWatch API",
    description="Livestock health monitoring: farms, animals, sensor telemetry, anomalies and notifications.",
    version=APP_VERSION,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced by the auth-protected routes below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(farms_router, prefix="/api/v1", tags=["Farms"])
app.include_router(livestock_router, prefix="/api/v1", tags=["Livestock"])
app.include_router(sensors_router, prefix="/api/v1", tags=["Sensor Data"])
app.include_router(anomalies_router, prefix="/api/v1", tags=["Anomalies"])
app.include_router(devices_router, prefix="/api/v1", tags=["Devices"])
app.include_router(notifications_router, prefix="/api/v1", tags=["Notifications"])
app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: User = Depends(get_current_user)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="HerdWatch API")


@app.get("/redoc", include_in_schema=False)
async def redoc(user: User = Depends(get_current_user)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="HerdWatch API")


# ---------------------------------------------------------------------------
# Exception handlers -- see api/errors.py for the envelope and each handler.
# ---------------------------------------------------------------------------

register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth and no rate limit: load balancers poll it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a per-component status.

    status is "degraded" when either store fails its ping. Sync so the
    blocking pings run in the thread pool.
    """
    database_ok = request.app.state.herd.ping() and request.app.state.user_store.ping()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=APP_VERSION,
        components={"app": "ok", "database": "ok" if database_ok else "unavailable"},
    )
