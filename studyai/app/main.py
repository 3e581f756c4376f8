from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studyai.app.api import account_router, study_router
from studyai.app.api.deps import get_upstream_provider
from studyai.app.core.config import settings
from studyai.app.core.http_client import init_http_client
from studyai.app.core.logging import get_logger, setup_logging
from studyai.app.db import models  # noqa: F401 - import to register models
from studyai.app.db.async_session import close_async_engine
from studyai.app.db.init_db import init_database, verify_connection
from studyai.app.exceptions import GatewayException, InternalError
from studyai.app.middleware.cors import CORSHeadersMiddleware
from studyai.app.middleware.request_id import RequestIdMiddleware, get_request_id


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Application lifespan context manager.

        Initializes the shared HTTP connection pool and the account tables on
        startup, and releases connections on shutdown. The upstream provider
        and identity verifier are built lazily on first use so that a
        misconfiguration surfaces as a request error, not a failed boot.
        """
        async with init_http_client() as http_client:
            app.state.http_client = http_client

            if not await verify_connection():
                logger.error("Database connection failed!")
                raise RuntimeError("Cannot connect to database")

            await init_database()

            logger.info(
                "Application startup complete",
                extra={"debug_mode": settings.debug, "daily_limit": settings.daily_limit},
            )

            yield {}

            app.state.provider = None
            app.state.identity_verifier = None
            app.state.http_client = None

        await close_async_engine()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="StudyAI Gateway",
        description="Authenticated, quota-enforcing gateway between study clients and an LLM",
        version="1.0.0",
        lifespan=lifespan
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(RequestIdMiddleware)
    # CORS outermost so preflights and every error carry the headers
    app.add_middleware(
        CORSHeadersMiddleware,
        allow_origin=settings.cors_allow_origin,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(study_router)
    app.include_router(account_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check endpoint with database and upstream status."""
        database_ok = await verify_connection()

        try:
            provider = get_upstream_provider(request)
        except InternalError:
            upstream = {"status": "unconfigured"}
        else:
            upstream_ok = await provider.health_check()
            upstream = {"status": "ok" if upstream_ok else "error", "provider": provider.name}

        return {
            "status": "ok" if database_ok and upstream["status"] == "ok" else "degraded",
            "components": {
                "database": {"status": "ok" if database_ok else "error"},
                "upstream": upstream,
            },
        }

    @app.exception_handler(GatewayException)
    async def gateway_exception_handler(request: Request, exc: GatewayException) -> JSONResponse:
        """Render every gateway failure as {"error": message}."""
        logger.info(
            f"Request failed: {type(exc).__name__}",
            extra={
                "request_id": get_request_id(request),
                "user_id": getattr(request.state, "user_id", None),
                "status_code": exc.status_code,
            },
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    # Unhandled exceptions are rendered by CORSHeadersMiddleware

    return app


# Create the application instance
app = create_app()
