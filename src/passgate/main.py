"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (database engine, Redis).
Middleware, CORS, exception handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from passgate import __version__
from passgate.api import api_router
from passgate.api.errors import register_exception_handlers
from passgate.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "passgate.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        reset_single_use=settings.reset_single_use,
    )

    from passgate.cache import close_redis, init_redis

    if settings.reset_single_use:
        try:
            await init_redis()
            logger.info("passgate.redis_connected", url=settings.redis_url)
        except Exception as e:
            # resetPassword will answer 503 until Redis is back
            logger.warning("passgate.redis_unavailable", error=str(e))

    yield

    logger.info("passgate.shutdown")

    await close_redis()

    from passgate.db.engine import dispose_engine
    await dispose_engine()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Passgate",
        description="Registration, login and stateless email-code password reset",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler

    from passgate.middleware.request_id import RequestIdMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: passgate.main:app)
app = create_app()
