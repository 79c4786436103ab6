"""
FastAPI application — the main entrypoint for the book catalog API.

Features:
- Book CRUD with search, genre filter, sorting and pagination
- CORS restrictions
- Redis rate limiting middleware
- Prometheus metrics endpoint
- Structured JSON logging
- Health probe
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response

from app.config import get_settings
from app.errors import register_exception_handlers
from app.logging_config import setup_logging
from app.middleware.rate_limiter import RateLimiterMiddleware
from app.routers import books
from app.schemas.book import HealthResponse

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger()

# ── Prometheus metrics ──
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and graceful shutdown."""
    logger.info("catalog_api_starting", environment=settings.environment)

    from app.database import Base, engine

    # Schema is created on start outside production
    if settings.environment in ("development", "testing"):
        from app.models import book  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")

    yield

    logger.info("catalog_api_shutting_down")
    await engine.dispose()


app = FastAPI(
    title="Book Catalog",
    description="Book library catalog API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

register_exception_handlers(app)

# ── CORS ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Rate Limiting ──
app.add_middleware(RateLimiterMiddleware)


# ── Request metrics middleware ──
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    if not settings.enable_metrics:
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration = time.time() - start

    # Route templates keep book ids out of the label set
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code,
    ).inc()
    REQUEST_LATENCY.labels(
        method=request.method,
        endpoint=endpoint,
    ).observe(duration)

    return response


# ── Routers ──
app.include_router(books.router)


@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health():
    return HealthResponse(
        success=True,
        message="Book API Server is running",
        timestamp=datetime.now(timezone.utc),
    )


# ── Prometheus metrics endpoint ──
@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    return Response(content=generate_latest(), media_type="text/plain")
