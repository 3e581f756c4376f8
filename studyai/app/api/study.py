"""Study request endpoint: authenticate, check allowance, dispatch, relay."""

import asyncio
import json
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, ValidationError, field_validator
from starlette.background import BackgroundTask

from studyai.app.api.deps import get_account_store, get_today, get_upstream_provider
from studyai.app.core.config import settings
from studyai.app.core.logging import get_log_context, get_logger
from studyai.app.core.security import Identity
from studyai.app.exceptions import BadRequestError
from studyai.app.middleware.auth import require_identity
from studyai.app.middleware.request_id import get_request_id
from studyai.app.providers.base import BaseProvider, UpstreamStream
from studyai.app.services.accounts import AccountStore
from studyai.app.services.dispatch import open_prose_stream, request_quiz
from studyai.app.services.study_modes import ResponseShape, StudyMode, Tier, build_upstream_payload

router = APIRouter()
logger = get_logger(__name__)

STREAM_INTERRUPTED_FRAME = b'data: {"error": "Stream interrupted, please retry"}\n\n'


class StudyRequest(BaseModel):
    """Request body for a study request."""
    message: str = Field(..., min_length=1)
    mode: str = Field(..., min_length=1)

    @field_validator("message", "mode")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v


def parse_study_request(body: Any) -> tuple[str, StudyMode]:
    """Validate the JSON body and resolve the mode.

    Raises:
        BadRequestError: If message or mode is missing, empty, or unknown
    """
    if not isinstance(body, dict):
        raise BadRequestError()
    try:
        study_request = StudyRequest(**body)
    except (ValidationError, TypeError):
        raise BadRequestError()

    if len(study_request.message) > settings.max_message_chars:
        raise BadRequestError(
            f"Message is too long (max {settings.max_message_chars} characters)"
        )
    return study_request.message, StudyMode.parse(study_request.mode)


def relay_stream(stream: UpstreamStream, request_id: str, user_id: str) -> StreamingResponse:
    """Forward the upstream event stream byte for byte.

    The whole relay is bounded by `upstream_stream_timeout`, so an upstream
    that keeps trickling bytes cannot hold the connection open forever.
    """

    async def body():
        relayed = 0
        loop = asyncio.get_running_loop()
        deadline = loop.time() + settings.upstream_stream_timeout
        chunks = stream.iter_bytes()
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise TimeoutError(
                        f"Stream exceeded {settings.upstream_stream_timeout}s"
                    )
                try:
                    # Bound each upstream read, never the yield
                    chunk = await asyncio.wait_for(anext(chunks), timeout=remaining)
                except StopAsyncIteration:
                    break
                relayed += len(chunk)
                yield chunk
        except Exception as e:
            # Headers are already sent; tell the client in-band and end the stream
            logger.error(
                f"Upstream stream failed mid-relay: {e}",
                extra={"request_id": request_id, "user_id": user_id, "error_type": type(e).__name__},
            )
            yield STREAM_INTERRUPTED_FRAME
        finally:
            await chunks.aclose()
            logger.info(
                "Stream relay finished",
                extra={"request_id": request_id, "user_id": user_id, "bytes": relayed},
            )

    return StreamingResponse(
        body(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Request-ID": request_id},
        background=BackgroundTask(stream.aclose),
    )


@router.post("/study-ai", response_model=None)
@router.post("/functions/v1/study-ai", response_model=None)
async def study_ai(
    request: Request,
    identity: Identity = Depends(require_identity),
    store: AccountStore = Depends(get_account_store),
    provider: BaseProvider = Depends(get_upstream_provider),
    today: date = Depends(get_today),
) -> StreamingResponse | JSONResponse:
    """Run one study request.

    1. Load (or lazily create) the caller's account
    2. Reject exhausted non-premium accounts before any upstream spend
    3. Validate the body and pick the prompt and response shape by mode
    4. Call the upstream; failures are mapped and cost nothing
    5. Charge one daily use, then return the quiz JSON or relay the stream
    """
    request_id = get_request_id(request)
    user_id = identity.user_id

    record = await store.load_or_create(user_id)
    store.ensure_allowance(record, today)

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequestError("Invalid JSON in request body")

    message, mode = parse_study_request(body)
    tier = Tier.for_account(record.is_premium)
    payload = build_upstream_payload(mode, message, tier)

    logger.info(
        f"Processing {mode.value} request for: {message[:50]}...",
        extra=get_log_context(request_id, user_id, mode.value, provider.name, tier=tier.value),
    )

    if mode.response_shape is ResponseShape.STRUCTURED:
        quiz = await request_quiz(provider, payload, request_id)
        await store.charge(record, today)
        logger.info(
            "Quiz delivered",
            extra={"request_id": request_id, "user_id": user_id, "questions": len(quiz.questions)},
        )
        return JSONResponse(
            content={"type": "quiz", "data": quiz.to_wire()},
            headers={"X-Request-ID": request_id},
        )

    stream = await open_prose_stream(provider, payload, request_id)
    try:
        # Charged at dispatch: delivery of the full stream is not tracked
        await store.charge(record, today)
    except BaseException:
        await stream.aclose()
        raise

    logger.info("Streaming response from upstream", extra={"request_id": request_id, "user_id": user_id})
    return relay_stream(stream, request_id, user_id)
