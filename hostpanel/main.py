"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from hostpanel.core.config import settings
from hostpanel.core.middleware import setup_middleware
from hostpanel.core.rate_limiter import limiter
from hostpanel.core.exceptions import HostPanelError, StoreUnavailableError
from hostpanel.db.session import driver_error_code
from hostpanel.services.cache_service import cache_service
from hostpanel.services.permission_cache import INVALIDATION_CHANNEL, permission_cache

from hostpanel.api.auth import router as auth_router
from hostpanel.api.roles import router as roles_router
from hostpanel.api.pricing import router as pricing_router
from hostpanel.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("hostpanel")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    listener = cache_service.subscribe(INVALIDATION_CHANNEL, permission_cache.handle_remote_invalidation)
    if listener is not None:
        logger.info("Listening for permission cache invalidations")
    elif settings.CACHE_ENABLED:
        logger.warning("Redis not available; permission cache invalidation is process-local")

    yield

    if listener is not None:
        listener.stop()
    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="Host Panel API",
    description="Hosting storefront administration: roles, permissions and custom VPS pricing",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(HostPanelError)
async def host_panel_exception_handler(request: Request, exc: HostPanelError):
    if isinstance(exc, StoreUnavailableError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
    content = {"detail": exc.message}
    if exc.detail is not None:
        content["errors"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "Database error on %s %s (code=%s): %s",
        request.method, request.url.path, driver_error_code(exc), exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(pricing_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Liveness check: answers without touching the database or Redis."""
    return {"status": "ok"}
