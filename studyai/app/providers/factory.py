"""Upstream provider construction from settings."""

from typing import Optional

import httpx

from studyai.app.core.config import settings
from studyai.app.core.logging import get_logger
from studyai.app.exceptions import InternalError
from studyai.app.providers.base import BaseProvider
from studyai.app.providers.mock import MockProvider
from studyai.app.providers.openai_compatible import OpenAICompatibleProvider

logger = get_logger(__name__)


def create_provider(http_client: Optional[httpx.AsyncClient] = None) -> BaseProvider:
    """Create the configured upstream provider.

    Raises:
        InternalError: If no upstream API key is configured and the mock
            provider is not enabled
    """
    if settings.upstream_mock:
        logger.warning("Using mock upstream provider")
        return MockProvider(http_client=http_client)

    if not settings.upstream_api_key:
        logger.error("UPSTREAM_API_KEY is not configured")
        raise InternalError("AI service is not configured")

    return OpenAICompatibleProvider(
        base_url=settings.upstream_base_url,
        api_key=settings.upstream_api_key,
        http_client=http_client,
        timeout=settings.upstream_timeout,
    )
