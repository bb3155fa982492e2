"""FastAPI application factory.

create_app() returns a configured FastAPI instance. Lifespan manages
startup/shutdown (Redis pool, database engine). Middleware, CORS,
error handling and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campushub import __version__
from campushub.api import api_router
from campushub.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "campushub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from campushub.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("campushub.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional; only rate limiting depends on it
        logger.warning("campushub.redis_unavailable", error=str(e))

    yield

    logger.info("campushub.shutdown")
    await close_redis()

    from campushub.db.engine import engine
    await engine.dispose()


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last line of defence: every failure still gets a response."""
    logger.exception("campushub.unhandled_error", error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="CampusHub",
        description="Campus information backend — accounts and sessions",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → RateLimit → Security → handler
    # RequestId is outermost so 429s carry X-Request-ID too.

    from campushub.middleware.rate_limit import RateLimitMiddleware
    from campushub.middleware.request_id import RequestIdMiddleware
    from campushub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: campushub.main:app)
app = create_app()
