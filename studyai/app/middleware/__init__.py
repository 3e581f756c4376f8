"""Middleware and request dependencies for the gateway."""

from studyai.app.middleware.auth import get_bearer_token, require_identity
from studyai.app.middleware.cors import CORSHeadersMiddleware
from studyai.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "CORSHeadersMiddleware",
    "RequestIdMiddleware",
    "get_bearer_token",
    "get_request_id",
    "require_identity",
]
