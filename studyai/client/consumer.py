"""Drive one study request against the gateway.

StudyClient.run validates locally, posts the request, branches on the
response content type and either accumulates streamed text or hands back
a parsed quiz. Every outcome, including cancellation, ends in a
StudyResult; nothing is raised to the caller for an ordinary failure.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional

import httpx
from pydantic import ValidationError

from studyai.app.core.logging import get_logger
from studyai.app.services.quiz import QuizPayload
from studyai.app.services.study_modes import StudyMode
from studyai.client.session import AccountSnapshot, StudySession
from studyai.client.sse import DeltaAccumulator

logger = get_logger("studyai.client")

STUDY_PATH = "/study-ai"
ACCOUNT_PATH = "/account"


class RequestState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SENDING = "sending"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    UPSTREAM_FAILED = "upstream_failed"
    STREAMING = "streaming"
    QUIZ_RECEIVED = "quiz_received"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    STREAM_ERROR = "stream_error"


class NoticeKind(str, Enum):
    VALIDATION = "validation"
    QUOTA = "quota"
    RATE_LIMITED = "rate_limited"
    FAILURE = "failure"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    title: str
    description: str


def validation_notice(description: str = "Please enter something to study") -> Notice:
    return Notice(NoticeKind.VALIDATION, "Error", description)


def quota_notice(description: str = "Upgrade to Premium for unlimited access!") -> Notice:
    return Notice(NoticeKind.QUOTA, "Daily limit reached", description)


def rate_limited_notice(description: str = "Too many requests. Please wait a moment and try again.") -> Notice:
    return Notice(NoticeKind.RATE_LIMITED, "Slow down", description)


def failure_notice(description: str = "Something went wrong") -> Notice:
    return Notice(NoticeKind.FAILURE, "Error", description)


def stopped_notice() -> Notice:
    return Notice(NoticeKind.STOPPED, "Stopped", "Generation stopped.")


@dataclass
class StudyResult:
    state: RequestState = RequestState.IDLE
    text: str = ""
    quiz: Optional[QuizPayload] = None
    notice: Optional[Notice] = None
    status_code: Optional[int] = None
    history: List[RequestState] = field(default_factory=list)


class AbortHandle:
    """User-facing cancel for one run.

    Aborting cancels the task doing the network work, so a pending connect
    or chunk read stops immediately.
    """

    def __init__(self):
        self._aborted = False
        self._task: Optional[asyncio.Task] = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        self._aborted = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _bind(self, task: asyncio.Task) -> None:
        self._task = task
        if self._aborted:
            task.cancel()


def _error_message(body: bytes) -> Optional[str]:
    """The gateway's {"error": ...} message, or a short raw fallback."""
    try:
        data = json.loads(body)
    except ValueError:
        text = body.decode("utf-8", errors="replace").strip()
        return text[:200] or None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return None


class StudyClient:
    """Async client for the study gateway.

    One run is active at a time: starting a new run aborts the previous one
    before the new request is sent.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 120.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._active: Optional[AbortHandle] = None

    async def aclose(self) -> None:
        if self._active is not None:
            self._active.abort()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "StudyClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def refresh_account(self, session: StudySession) -> AccountSnapshot:
        """Replace the session's cached snapshot with the gateway's view.

        Raises:
            httpx.HTTPError: On transport failure or a non-success status
        """
        response = await self._client.get(
            f"{self.base_url}{ACCOUNT_PATH}", headers=session.auth_headers()
        )
        response.raise_for_status()
        session.account = AccountSnapshot.from_wire(response.json())
        return session.account

    async def _refresh_quietly(self, session: StudySession) -> None:
        """Refresh after a terminal success; failures never change the result."""
        try:
            async with asyncio.timeout(self.timeout):
                await self.refresh_account(session)
        except (httpx.HTTPError, ValueError, TimeoutError) as e:
            logger.warning(f"Account refresh failed: {e}")

    async def run(
        self,
        session: StudySession,
        message: str,
        mode: str,
        handle: Optional[AbortHandle] = None,
        on_text: Optional[Callable[[str], None]] = None,
        on_notice: Optional[Callable[[Notice], None]] = None,
        today: Optional[date] = None,
    ) -> StudyResult:
        """Run one study request to a terminal state."""
        if self._active is not None:
            logger.info("Cancelling active request before starting a new one")
            self._active.abort()

        handle = handle or AbortHandle()
        self._active = handle
        result = StudyResult()
        accumulator = DeltaAccumulator(on_text)

        def enter(state: RequestState) -> None:
            result.state = state
            result.history.append(state)

        def notify(notice: Notice) -> None:
            result.notice = notice
            if on_notice is not None:
                on_notice(notice)

        try:
            enter(RequestState.VALIDATING)
            if not message.strip():
                notify(validation_notice())
                enter(RequestState.IDLE)
                return result
            try:
                StudyMode(mode)
            except ValueError:
                notify(validation_notice(f"Unknown study mode: {mode}"))
                enter(RequestState.IDLE)
                return result

            today = today or datetime.now(timezone.utc).date()
            if session.account.is_exhausted(today):
                notify(quota_notice())
                enter(RequestState.QUOTA_EXCEEDED)
                return result

            enter(RequestState.SENDING)
            task = asyncio.create_task(
                self._exchange(session, message, mode, accumulator, result, enter, notify)
            )
            handle._bind(task)
            try:
                refresh = await task
            except asyncio.CancelledError:
                if not handle.aborted:
                    task.cancel()
                    raise
                result.text = accumulator.text
                notify(stopped_notice())
                enter(RequestState.CANCELLED)
                logger.info("Request stopped by user", extra={"mode": mode})
                return result

            # Outside the abort and timeout scope of the exchange
            if refresh:
                await self._refresh_quietly(session)
            return result
        finally:
            if self._active is handle:
                self._active = None

    async def _exchange(
        self,
        session: StudySession,
        message: str,
        mode: str,
        accumulator: DeltaAccumulator,
        result: StudyResult,
        enter: Callable[[RequestState], None],
        notify: Callable[[Notice], None],
    ) -> bool:
        """Run the HTTP exchange. Returns True when the account should be refreshed."""
        streaming = False
        try:
            async with asyncio.timeout(self.timeout):
                async with self._client.stream(
                    "POST",
                    f"{self.base_url}{STUDY_PATH}",
                    headers=session.auth_headers(),
                    json={"message": message, "mode": mode},
                ) as response:
                    result.status_code = response.status_code

                    if response.status_code >= 400:
                        detail = _error_message(await response.aread())
                        self._reject(response.status_code, detail, enter, notify)
                        return False

                    content_type = response.headers.get("content-type", "")
                    if "text/event-stream" in content_type:
                        streaming = True
                        enter(RequestState.STREAMING)
                        async for chunk in response.aiter_bytes():
                            if accumulator.feed(chunk):
                                break
                        accumulator.finish()
                        result.text = accumulator.text
                        if accumulator.error:
                            notify(failure_notice(accumulator.error))
                            enter(RequestState.STREAM_ERROR)
                            return False
                        enter(RequestState.COMPLETED)
                        return True

                    return self._handle_json(await response.aread(), result, enter, notify)
        except (httpx.HTTPError, TimeoutError) as e:
            result.text = accumulator.text
            kind = "timeout" if isinstance(e, (TimeoutError, httpx.TimeoutException)) else "network"
            logger.warning(f"Study request failed ({kind}): {e}", extra={"mode": mode})
            if streaming:
                notify(failure_notice("Connection lost while receiving the response. Please retry."))
                enter(RequestState.STREAM_ERROR)
            else:
                notify(failure_notice("Could not reach the study service. Please try again."))
                enter(RequestState.UPSTREAM_FAILED)
        return False

    @staticmethod
    def _reject(
        status_code: int,
        detail: Optional[str],
        enter: Callable[[RequestState], None],
        notify: Callable[[Notice], None],
    ) -> None:
        if status_code == 429:
            notify(rate_limited_notice())
            enter(RequestState.RATE_LIMITED)
        elif status_code == 402:
            notify(quota_notice(detail) if detail else quota_notice())
            enter(RequestState.QUOTA_EXCEEDED)
        else:
            notify(failure_notice(detail) if detail else failure_notice())
            enter(RequestState.UPSTREAM_FAILED)

    @staticmethod
    def _handle_json(
        body: bytes,
        result: StudyResult,
        enter: Callable[[RequestState], None],
        notify: Callable[[Notice], None],
    ) -> bool:
        try:
            data = json.loads(body)
        except ValueError:
            notify(failure_notice())
            enter(RequestState.UPSTREAM_FAILED)
            return False

        if isinstance(data, dict) and data.get("type") == "quiz":
            try:
                result.quiz = QuizPayload.model_validate(data.get("data"))
            except ValidationError as e:
                logger.warning(f"Malformed quiz payload: {e}")
                notify(failure_notice("Failed to load quiz. Please try again."))
                enter(RequestState.UPSTREAM_FAILED)
                return False
            enter(RequestState.QUIZ_RECEIVED)
            return True

        if isinstance(data, dict) and data.get("error"):
            notify(failure_notice(str(data["error"])))
        else:
            notify(failure_notice())
        enter(RequestState.UPSTREAM_FAILED)
        return False
