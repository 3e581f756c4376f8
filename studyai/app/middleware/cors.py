"""CORS headers for browser callers.

Every response, errors and streams included, carries the allow-origin and
allow-headers pair. OPTIONS requests are answered here with an empty 204
and never reach the routes. As the outermost middleware this is also the
last boundary where an unhandled exception can still become a JSON error
with those headers attached.
"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from studyai.app.core.config import settings
from studyai.app.core.logging import get_logger

logger = get_logger(__name__)


class CORSHeadersMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, allow_origin: str = "*", allow_headers: str = ""):
        super().__init__(app)
        self.headers = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Headers": allow_headers,
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return Response(
                status_code=204,
                headers={**self.headers, "Access-Control-Allow-Methods": "POST, GET, OPTIONS"},
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")
            # Never returns a traceback to the client; full details are logged
            logger.exception(
                f"Unhandled exception [request_id={request_id}]",
                extra={"request_id": request_id, "exception_type": type(exc).__name__},
            )
            message = str(exc) if settings.debug else "Internal server error"
            response = JSONResponse(status_code=500, content={"error": message})

        response.headers.update(self.headers)
        return response
