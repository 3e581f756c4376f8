"""Shared HTTP client management for connection pooling.

One client is created on application startup and shared by the upstream
provider and the identity verifier for connection reuse.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from studyai.app.core.config import settings


def build_timeout() -> httpx.Timeout:
    """Granular timeouts from settings.

    Streaming responses rely on the read timeout between chunks; the
    overall ceiling for one upstream call is enforced by the provider.
    """
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


def build_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    This context manager should be used in the FastAPI lifespan:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client() as http_client:
                app.state.http_client = http_client
                yield
    """
    client = httpx.AsyncClient(timeout=build_timeout(), limits=build_limits())
    try:
        yield client
    finally:
        await client.aclose()
