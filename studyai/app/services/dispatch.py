"""Upstream dispatch and failure mapping for study requests.

No retry is attempted here: a failed upstream call is reported once and
the caller leaves the quota untouched.
"""

from typing import Any, Dict

import httpx

from studyai.app.core.logging import get_logger
from studyai.app.exceptions import (
    GatewayException,
    PaymentRequiredError,
    RateLimitedError,
    UpstreamError,
)
from studyai.app.providers.base import BaseProvider, UpstreamStream
from studyai.app.services.quiz import QuizPayload, parse_quiz_completion

logger = get_logger(__name__)


def map_upstream_status(status_code: int) -> GatewayException:
    """Translate an upstream HTTP status into the gateway's error vocabulary."""
    if status_code == 429:
        return RateLimitedError()
    if status_code == 402:
        return PaymentRequiredError()
    return UpstreamError()


def map_upstream_error(exc: Exception, request_id: str | None = None) -> GatewayException:
    """Translate an exception raised while calling the upstream."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        logger.error(
            f"Upstream HTTP error: {status}",
            extra={
                "request_id": request_id,
                "status_code": status,
                "response_preview": exc.response.text[:200],
            },
        )
        return map_upstream_status(status)
    if isinstance(exc, httpx.TimeoutException):
        logger.error("Upstream timeout", extra={"request_id": request_id})
        return UpstreamError("AI service timed out. Please try again.")
    logger.error(
        f"Upstream transport error: {exc}",
        extra={"request_id": request_id, "error_type": type(exc).__name__},
    )
    return UpstreamError()


async def request_quiz(
    provider: BaseProvider,
    payload: Dict[str, Any],
    request_id: str | None = None,
) -> QuizPayload:
    """Call the upstream once for a structured quiz.

    Raises:
        RateLimitedError, PaymentRequiredError, UpstreamError
    """
    try:
        completion = await provider.chat_completion(payload)
    except httpx.HTTPError as e:
        raise map_upstream_error(e, request_id) from e
    except ValueError as e:
        logger.error(f"Upstream returned a non-JSON body: {e}", extra={"request_id": request_id})
        raise UpstreamError("Failed to generate quiz. Please try again.") from e
    return parse_quiz_completion(completion)


async def open_prose_stream(
    provider: BaseProvider,
    payload: Dict[str, Any],
    request_id: str | None = None,
) -> UpstreamStream:
    """Start the upstream token stream, mapping failures before any relay.

    Raises:
        RateLimitedError, PaymentRequiredError, UpstreamError
    """
    try:
        return await provider.open_stream(payload)
    except httpx.HTTPError as e:
        raise map_upstream_error(e, request_id) from e
