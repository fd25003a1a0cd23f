"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Collaborators (credential store, outbound HTTP client, Redis) are
built here and hung on app.state, so tests can pass their own. Lifespan
handles the startup/shutdown work: creating tables for local dev and
closing the resources this app owns.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import redis.asyncio as aioredis
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from chatgate import __version__
from chatgate.api import api_router, page_router
from chatgate.auth.password import dummy_hash_async
from chatgate.cache import build_redis
from chatgate.config import settings
from chatgate.errors import ChatgateError, chatgate_error_handler
from chatgate.log_setup import configure_logging
from chatgate.services.user_store import UserStore, build_user_store

logger = structlog.get_logger()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON bodies get the same short error shape as everything else."""
    logger.info("request.invalid_body", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def _default_user_store() -> UserStore:
    if settings.user_store_backend == "sql":
        from chatgate.db.engine import async_session_factory

        return build_user_store("sql", session_factory=async_session_factory)
    return build_user_store("file", path=settings.user_store_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. Only resources create_app() built itself are closed here.
    """
    logger.info(
        "chatgate.starting",
        version=__version__,
        environment=settings.environment,
        user_store=settings.user_store_backend,
        port=settings.port,
    )

    owns_engine = app.state.owns_user_store and settings.user_store_backend == "sql"
    if owns_engine and settings.auto_create_schema:
        from chatgate.db.engine import engine, init_db

        await init_db(engine)
        logger.info("chatgate.schema_ready")

    if app.state.owns_redis:
        try:
            await app.state.redis.ping()
            logger.info("chatgate.redis_connected", url=settings.redis_url)
        except (RedisError, OSError) as e:
            logger.warning("chatgate.redis_unavailable", error=str(e))

    # Unknown-email logins verify against this; build it before the first one
    await dummy_hash_async()

    yield

    logger.info("chatgate.shutdown")

    if app.state.owns_http_client:
        await app.state.http_client.aclose()

    if app.state.owns_redis:
        await app.state.redis.aclose()

    if owns_engine:
        from chatgate.db.engine import engine

        await engine.dispose()


def create_app(
    user_store: Optional[UserStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    redis: Optional[aioredis.Redis] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="chatgate",
        description="Authenticated chat: email/password auth, JWT sessions, LLM proxy",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.owns_user_store = user_store is None
    app.state.user_store = user_store or _default_user_store()
    app.state.owns_http_client = http_client is None
    app.state.http_client = http_client or httpx.AsyncClient(
        timeout=settings.llm_timeout_seconds
    )
    # Rate-limit counters; no client at all when limiting is off
    app.state.owns_redis = redis is None and settings.rate_limit_enabled
    if redis is None and settings.rate_limit_enabled:
        redis = build_redis()
    app.state.redis = redis

    app.add_exception_handler(ChatgateError, chatgate_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → RouteGuard → handler

    from chatgate.middleware.rate_limit import RateLimitMiddleware
    from chatgate.middleware.request_id import RequestIdMiddleware
    from chatgate.middleware.route_guard import RouteGuardMiddleware
    from chatgate.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        RouteGuardMiddleware,
        cookie_name=settings.cookie_name,
        verify_tokens=settings.guard_verify_tokens,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
        enabled=settings.rate_limit_enabled,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.include_router(page_router)

    return app


# Default app instance (used by uvicorn: chatgate.main:app)
app = create_app()
