"""Main FastAPI application."""
import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from hangout.api.chat import router as chat_router
from hangout.api.friends import router as friends_router
from hangout.api.notifications import router as notifications_router
from hangout.api.presence import router as presence_router
from hangout.api.realtime import router as realtime_router
from hangout.api.rooms import router as rooms_router
from hangout.domain.common.errors import DomainError
from hangout.infra.db import base as db_base
# Import all models to ensure they're registered with Base
from hangout.infra.db import models  # noqa: F401
from hangout.infra.messaging.redis_bus import redis_bus
from hangout.infra.realtime.publisher import realtime_publisher
from hangout.readiness import is_ready, run_all_checks_async
from hangout.settings import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    engine = db_base.engine
    if engine is not None and settings.create_tables_on_startup:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(db_base.Base.metadata.create_all)
        except Exception as e:
            # Database might not be ready yet; /ready reports it
            logger.warning("Could not create tables during startup: %s", e)

    # Relay realtime:events from Redis to this instance's sockets
    subscriber_task = None
    try:
        await redis_bus.connect()
        subscriber_task = asyncio.create_task(realtime_publisher.run_subscriber())
        logger.info("Realtime Redis subscriber started")
    except Exception as e:
        logger.warning("Could not connect to Redis during startup (local delivery only): %s", e)

    yield

    # Shutdown
    try:
        if subscriber_task is not None:
            subscriber_task.cancel()
            try:
                await subscriber_task
            except asyncio.CancelledError:
                pass
        await redis_bus.disconnect()
        if engine is not None:
            await engine.dispose()
    except asyncio.CancelledError:
        logger.info("Lifespan shutdown cancelled (e.g. Ctrl+C); cleanup attempted.")
        raise


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    max_age=3600,
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        logger.info("[REQUEST] %s %s", request.method, request.url.path)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("   Query params: %s", dict(request.query_params))
            # Don't log authorization header fully
            headers = dict(request.headers)
            auth_header = headers.get("authorization", "")
            if auth_header.startswith("Bearer "):
                token = auth_header[7:]
                headers["authorization"] = f"Bearer {token[:20]}..." if len(token) > 20 else "Bearer ***"
            logger.debug("   Headers: %s", headers)

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            "[RESPONSE] %s %s - %s (%.3fs)",
            request.method,
            request.url.path,
            response.status_code,
            process_time,
        )
        return response


# Add logging middleware AFTER CORS (CORS must be first)
app.add_middleware(LoggingMiddleware)


def jsonable_errors(errors) -> list:
    """Drop non-serializable ctx values (e.g. exception instances) from validation errors."""
    out = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        out.append(error)
    return out


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with detailed logging."""
    errors = exc.errors()
    logger.error("[VALIDATION ERROR] %s %s: %d error(s)", request.method, request.url.path, len(errors))
    for i, error in enumerate(errors, 1):
        logger.error("   Error %d: %s", i, error)
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(errors)})


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Map domain errors to their HTTP status; kind lets clients branch without parsing detail."""
    if exc.status_code >= 500:
        logger.error("[DOMAIN ERROR] %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("[DOMAIN ERROR] %s %s: %s %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


# Health check (root and under /v1 so GET /v1/health works behind a /v1 proxy)
@app.get("/health")
@app.get(f"{settings.api_v1_prefix}/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": settings.app_version}


@app.get("/ready")
async def readiness():
    """Readiness endpoint: run all checks and return 200 if ready, 503 otherwise."""
    checks = await run_all_checks_async()
    ready, summary = is_ready(checks)
    if ready:
        return {"ready": True, "checks": summary}
    return JSONResponse(status_code=503, content={"ready": False, "checks": summary})


# API v1 routes
app.include_router(friends_router, prefix=settings.api_v1_prefix)
app.include_router(rooms_router, prefix=settings.api_v1_prefix)
app.include_router(presence_router, prefix=settings.api_v1_prefix)
app.include_router(chat_router, prefix=settings.api_v1_prefix)
app.include_router(notifications_router, prefix=settings.api_v1_prefix)
app.include_router(realtime_router, prefix=settings.api_v1_prefix)
