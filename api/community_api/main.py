import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.requests import Request

from community_api.database import async_engine, settings
from community_api.middleware import SecurityHeadersMiddleware
from community_api.rate_limit import limiter
from community_api.routers import (
    events,
    health,
    interactions,
    reports,
    threads,
    users,
)
from community_api.services.broadcast import BroadcastRegistry
from community_api.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_production()

    yield

    app.state.connection_manager.shutdown()
    await async_engine.dispose()


app = FastAPI(
    title="Community API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.environment == "production" else "/docs",
    redoc_url=None if settings.environment == "production" else "/redoc",
)

# One registry per process, shared by the events stream and every write endpoint.
app.state.broadcast_registry = BroadcastRegistry()
app.state.connection_manager = ConnectionManager(
    app.state.broadcast_registry,
    keepalive_interval=settings.sse_keepalive_seconds,
    queue_maxsize=settings.sse_queue_maxsize,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Middleware order (Starlette LIFO): CORSMiddleware → SecurityHeaders → SlowAPI
# Added in reverse order so CORS runs outermost
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Accept", "Cache-Control", "X-API-Key"],
)


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    if isinstance(exc, IntegrityError):
        return JSONResponse(status_code=409, content={"detail": "Resource conflict"})
    logger.exception("Database error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health.router)
app.include_router(events.router)
app.include_router(users.router)
app.include_router(threads.router)
app.include_router(interactions.router)
app.include_router(reports.router)
