"""OpenAI-compatible chat completions provider.

Works against any endpoint that speaks the OpenAI chat completions protocol
(hosted AI gateways, OpenAI itself, local servers), including function
tools and `text/event-stream` responses.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from studyai.app.providers.base import BaseProvider, UpstreamStream


class OpenAICompatibleProvider(BaseProvider):
    """Upstream provider with support for shared HTTP client connection pooling.

    If http_client is provided, it will be used for all requests (connection reuse).
    If not, a new client is created per-request.
    """

    name = "openai-compatible"

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming chat completion request.

        Args:
            payload: The request payload (model, messages, tools, etc.)

        Returns:
            The JSON response from the API

        Raises:
            httpx.HTTPStatusError: If the API returns an error
            httpx.TimeoutException: If the call exceeds `timeout`
        """
        url = self._get_endpoint_url("/chat/completions")
        body = {**payload, "stream": False}

        async with self._client_context() as client:
            try:
                resp = await asyncio.wait_for(
                    client.post(url, headers=self.headers, json=body),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                raise httpx.ReadTimeout(f"Upstream did not answer within {self.timeout}s")
            resp.raise_for_status()
            return resp.json()

    async def open_stream(self, payload: Dict[str, Any]) -> UpstreamStream:
        """Open a streaming chat completion.

        The status line is inspected before returning so callers can map
        failures before relaying anything. On error the body is read for
        diagnostics and the connection is released.

        Raises:
            httpx.HTTPStatusError: If the API returns an error
            httpx.TimeoutException: If headers do not arrive within `timeout`
        """
        url = self._get_endpoint_url("/chat/completions")
        body = {**payload, "stream": True}

        client = self._get_client()
        is_shared = self._http_client is not None
        request = client.build_request("POST", url, headers=self.headers, json=body)

        async def close_client() -> None:
            if not is_shared:
                await client.aclose()

        try:
            resp = await asyncio.wait_for(client.send(request, stream=True), timeout=self.timeout)
        except asyncio.TimeoutError:
            await close_client()
            raise httpx.ReadTimeout(
                f"Upstream stream did not start within {self.timeout}s", request=request
            )
        except BaseException:
            await close_client()
            raise

        if resp.is_error:
            try:
                await resp.aread()
            finally:
                await resp.aclose()
                await close_client()
            resp.raise_for_status()

        async def close() -> None:
            try:
                await resp.aclose()
            finally:
                await close_client()

        return UpstreamStream(resp.aiter_bytes(), close)

    async def health_check(self, timeout: float = 2.0) -> bool:
        """Call the /models endpoint with a short timeout."""
        try:
            url = self._get_endpoint_url("/models")
            async with self._client_context() as client:
                resp = await client.get(url, headers=self.headers, timeout=timeout)
                return resp.status_code == 200
        except httpx.HTTPError:
            return False
