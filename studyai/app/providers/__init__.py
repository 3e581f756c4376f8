"""Upstream completion providers.

This package provides:
- Base provider interface (BaseProvider) and the UpstreamStream handle
- OpenAI-compatible provider used in production
- Mock provider for development and tests
- Provider construction from settings (create_provider)
"""

from studyai.app.providers.base import BaseProvider, UpstreamStream
from studyai.app.providers.factory import create_provider
from studyai.app.providers.mock import MockProvider
from studyai.app.providers.openai_compatible import OpenAICompatibleProvider

__all__ = [
    "BaseProvider",
    "UpstreamStream",
    "create_provider",
    "MockProvider",
    "OpenAICompatibleProvider",
]
