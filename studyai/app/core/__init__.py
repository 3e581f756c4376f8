"""Core utilities for the gateway application."""

from studyai.app.core.config import settings
from studyai.app.core.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
]
