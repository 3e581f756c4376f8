"""Mock upstream provider for local development and tests.

This provider simulates the upstream completion service without making
external API calls.

Enable by setting environment variable:
    UPSTREAM_MOCK=true
"""

import asyncio
import json
import time
import uuid
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from studyai.app.providers.base import BaseProvider, UpstreamStream
from studyai.app.services.study_modes import OPTION_LABELS, QUIZ_QUESTION_COUNT, QUIZ_TOOL_NAME


class MockProvider(BaseProvider):
    """Mock provider that returns canned streams and quizzes.

    Features:
    - Streams the reply as OpenAI-style delta frames ending in `data: [DONE]`
    - Answers quiz requests with a schema-valid tool call
    - `fail_status` makes every call fail with that HTTP status
    """

    name = "mock"

    def __init__(
        self,
        base_url: str = "http://mock.provider",
        api_key: str = "mock-key",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        chunk_delay: float = 0.0,
        fail_status: Optional[int] = None,
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.chunk_delay = chunk_delay
        self.fail_status = fail_status
        self.calls: list[Dict[str, Any]] = []

    def _maybe_fail(self) -> None:
        if self.fail_status is None:
            return
        request = httpx.Request("POST", self._get_endpoint_url("/chat/completions"))
        response = httpx.Response(self.fail_status, request=request, text="simulated failure")
        response.raise_for_status()

    @staticmethod
    def _topic(payload: Dict[str, Any]) -> str:
        for msg in reversed(payload.get("messages", [])):
            if msg.get("role") == "user":
                return msg.get("content", "")
        return ""

    def _quiz_arguments(self, topic: str) -> Dict[str, Any]:
        questions = []
        for n in range(1, QUIZ_QUESTION_COUNT + 1):
            questions.append({
                "question": f"Question {n} about {topic}?",
                "options": {label: f"Option {label}" for label in OPTION_LABELS},
                "correctAnswer": OPTION_LABELS[(n - 1) % len(OPTION_LABELS)],
                "explanation": f"Explanation for question {n}.",
            })
        return {"title": f"Quiz: {topic}", "questions": questions}

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(payload)
        self._maybe_fail()

        message: Dict[str, Any] = {"role": "assistant", "content": None}
        if payload.get("tools"):
            message["tool_calls"] = [{
                "id": f"call_{uuid.uuid4().hex[:12]}",
                "type": "function",
                "function": {
                    "name": QUIZ_TOOL_NAME,
                    "arguments": json.dumps(self._quiz_arguments(self._topic(payload))),
                },
            }]
        else:
            message["content"] = f"Mock answer about {self._topic(payload)}."

        return {
            "id": f"chatcmpl-{uuid.uuid4().hex[:24]}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": payload.get("model", "mock-model"),
            "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
        }

    def reply_fragments(self, payload: Dict[str, Any]) -> list[str]:
        return ["## Overview\n\n", "Mock explanation ", f"of {self._topic(payload)}."]

    async def _frames(self, payload: Dict[str, Any]) -> AsyncIterator[bytes]:
        yield b": keep-alive\n\n"
        for fragment in self.reply_fragments(payload):
            data = {
                "id": "chatcmpl-mock",
                "object": "chat.completion.chunk",
                "created": int(time.time()),
                "model": payload.get("model", "mock-model"),
                "choices": [{"index": 0, "delta": {"content": fragment}, "finish_reason": None}],
            }
            yield f"data: {json.dumps(data, ensure_ascii=False)}\n\n".encode()
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
        yield b"data: [DONE]\n\n"

    async def open_stream(self, payload: Dict[str, Any]) -> UpstreamStream:
        self.calls.append(payload)
        self._maybe_fail()
        return UpstreamStream(self._frames(payload))

    async def health_check(self, timeout: float = 2.0) -> bool:
        return True
