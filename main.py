"""
main.py

Application entrypoint for the ServiceWala API.
- Initializes structured logging
- Builds the application singletons (event bus, catalog cache, identity bridge)
- Sets up FastAPI application and middlewares
- Registers all API routers
- Integrates rate limiting via SlowAPI
- Adds common security headers
- Configures CORS
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.responses import Response

from servicewala.auth.routes import router as auth_router
from servicewala.auth.services import IdentityBridge
from servicewala.booking.routes import router as booking_router
from servicewala.category.routes import router as category_router
from servicewala.core.config import settings
from servicewala.core.events import EventBus
from servicewala.core.limiter import limiter
from servicewala.core.logging import init_logging
from servicewala.core.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from servicewala.core.redis import redis_client
from servicewala.core.schemas import MessageResponse
from servicewala.database.session import AsyncSessionLocal, engine
from servicewala.review.routes import router as review_router
from servicewala.service.routes import router as service_router
from servicewala.service.services import build_catalog_cache
from servicewala.user.routes import router as user_router

init_logging()
logger = logging.getLogger(__name__)


# -----------------------------
# Lifespan
# -----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(f"[APP] {settings.APP_NAME} starting")
    yield
    await app.state.identity_bridge.drain()
    await engine.dispose()
    logger.info(f"[APP] {settings.APP_NAME} stopped")


# -----------------------------
# FastAPI App Initialization
# -----------------------------
app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)

# -----------------------------
# Application Singletons
# -----------------------------
events = EventBus()
app.state.events = events
app.state.catalog_cache = build_catalog_cache(
    AsyncSessionLocal,
    events,
    ttl_seconds=settings.CATALOG_CACHE_TTL_SECONDS,
    redis_client=redis_client,
    redis_key=f"{settings.CACHE_PREFIX}catalog",
)
app.state.identity_bridge = IdentityBridge(AsyncSessionLocal)

# -----------------------------
# Middleware Configuration
# -----------------------------
app.state.limiter = limiter


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    return _rate_limit_exceeded_handler(request, exc)  # type: ignore[arg-type]


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# -----------------------------
# CORSMiddleware Configuration
# -----------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Custom 404 Handler
# -----------------------------
@app.exception_handler(404)
async def custom_404_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Logs and returns a standardized response for 404 errors.
    """
    logger.warning(f"404 Not Found: {request.method} {request.url.path}")
    detail = getattr(exc, "detail", None)
    if not isinstance(detail, dict):
        detail = {"error": "Not Found"}
    return JSONResponse(status_code=404, content={"detail": detail})


# -----------------------------
# API Router Registration
# -----------------------------
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(category_router)
app.include_router(service_router)
app.include_router(booking_router)
app.include_router(review_router)


# -----------------------------
# Health Endpoint
# -----------------------------
@app.get("/health", response_model=MessageResponse, tags=["Health"])
async def health() -> MessageResponse:
    return MessageResponse(detail="ok")
